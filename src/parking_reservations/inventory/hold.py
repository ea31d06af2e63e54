# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""SpotHold and ReservationToken dataclasses for tracking spot claims."""

from dataclasses import dataclass, field, replace
from typing import NamedTuple

from ..types.reservation import ReservationStatus, TimeWindow
from ..types.spot import ParkingSpot, SpotStatus


@dataclass(frozen=True)
class SpotHold:
    """
    A live reservation's claim on a spot for its window.

    Attributes:
        reservation_id: The reservation that owns the hold
        spot_id: The held spot
        window: The claimed time window
        status: UPCOMING or ACTIVE
    """

    reservation_id: str
    spot_id: str
    window: TimeWindow
    status: ReservationStatus = ReservationStatus.UPCOMING

    @property
    def is_active(self) -> bool:
        return self.status is ReservationStatus.ACTIVE


@dataclass
class ReservationToken:
    """
    Result of a provisional change to one spot.

    Returned by the SpotInventory context managers while the spot lock is
    held. The change is kept only if confirm() is called before the context
    exits; otherwise (or if the body raises) it is rolled back.

    Attributes:
        spot_id: The affected spot
        reservation_id: The reservation the change belongs to, if any
        spot: The spot record before the change
        new_status: Spot status derived after the change
        hold: The hold placed or updated, or the hold removed on release
        changed: False when the change was a no-op (e.g. already released)
    """

    spot_id: str
    reservation_id: str | None
    spot: ParkingSpot
    new_status: SpotStatus
    hold: SpotHold | None = None
    changed: bool = True
    confirmed: bool = field(default=False, init=False)

    @property
    def status_changed(self) -> bool:
        return self.new_status is not self.spot.status

    @property
    def next_spot(self) -> ParkingSpot:
        """Spot record to persist: the new status at the next version."""
        return replace(self.spot, status=self.new_status, version=self.spot.version + 1)

    def confirm(self) -> None:
        """Keep the change once the enclosing context exits."""
        self.confirmed = True


class DueTransitions(NamedTuple):
    """Holds whose window has started or elapsed."""

    activate: list[SpotHold]
    complete: list[SpotHold]


__all__ = ["DueTransitions", "ReservationToken", "SpotHold"]
