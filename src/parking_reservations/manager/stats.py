# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Per-user booking statistics derived from reservation history."""

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..types.reservation import Reservation, ReservationStatus


@dataclass(frozen=True)
class UserStats:
    """
    Summary of one user's reservations.

    Attributes:
        user_id: The user
        reservations_count: Reservations ever created
        live_count: Reservations still upcoming or active
        total_spent: Sum of final prices, cancelled reservations excluded
        favorite_facility: Facility booked most often, if any
        favorite_facility_visits: Number of bookings at that facility
        last_booking_at: created_at of the most recent reservation
    """

    user_id: str
    reservations_count: int = 0
    live_count: int = 0
    total_spent: int = 0
    favorite_facility: str | None = None
    favorite_facility_visits: int = 0
    last_booking_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "reservations_count": self.reservations_count,
            "live_count": self.live_count,
            "total_spent": self.total_spent,
            "favorite_facility": self.favorite_facility,
            "favorite_facility_visits": self.favorite_facility_visits,
            "last_booking_at": (
                self.last_booking_at.isoformat() if self.last_booking_at else None
            ),
        }


def compute_user_stats(
    user_id: str,
    reservations: Iterable[Reservation],
    facility_of: Callable[[str], str | None],
) -> UserStats:
    """
    Aggregate a user's reservations.

    Args:
        user_id: The user the reservations belong to
        reservations: The user's reservations
        facility_of: Maps a spot id to its facility id (None if unknown)
    """
    reservations = list(reservations)
    if not reservations:
        return UserStats(user_id=user_id)

    visits: Counter[str] = Counter()
    for reservation in reservations:
        facility = facility_of(reservation.spot_id)
        if facility is not None:
            visits[facility] += 1

    # Ties go to the facility seen first in `reservations`
    favorite, count = (visits.most_common(1) or [(None, 0)])[0]

    return UserStats(
        user_id=user_id,
        reservations_count=len(reservations),
        live_count=sum(1 for r in reservations if r.status.is_live),
        total_spent=sum(
            r.final_price
            for r in reservations
            if r.status is not ReservationStatus.CANCELLED
        ),
        favorite_facility=favorite,
        favorite_facility_visits=count,
        last_booking_at=max(r.created_at for r in reservations),
    )


__all__ = ["UserStats", "compute_user_stats"]
