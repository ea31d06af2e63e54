# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Reservation types.

This module defines the Reservation entity, its status state machine, the
bounded time window it claims, and the request used to create one.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from ..exceptions import InvalidWindowError
from .price import PriceBreakdown
from .spot import SpotStatus, SpotType

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


class ReservationStatus(Enum):
    """
    Reservation lifecycle status.

    Status only moves forward: UPCOMING -> ACTIVE -> COMPLETED, or
    UPCOMING/ACTIVE -> CANCELLED. COMPLETED and CANCELLED are terminal.
    """

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_live(self) -> bool:
        """Whether the reservation still holds its spot."""
        return self in (ReservationStatus.UPCOMING, ReservationStatus.ACTIVE)

    @property
    def is_terminal(self) -> bool:
        return not self.is_live

    def can_transition_to(self, target: "ReservationStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.UPCOMING: frozenset(
        {ReservationStatus.ACTIVE, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.ACTIVE: frozenset(
        {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
}


def derive_spot_status(
    live_statuses: Iterable[ReservationStatus], disabled: bool = False
) -> SpotStatus:
    """
    Spot status implied by the statuses of the reservations holding it.

    Occupied when any is active, reserved when any is upcoming, otherwise
    available. A disabled spot stays disabled regardless of its holds.
    """
    if disabled:
        return SpotStatus.DISABLED
    statuses = set(live_statuses)
    if ReservationStatus.ACTIVE in statuses:
        return SpotStatus.OCCUPIED
    if ReservationStatus.UPCOMING in statuses:
        return SpotStatus.RESERVED
    return SpotStatus.AVAILABLE


@dataclass(frozen=True)
class TimeWindow:
    """
    A half-open time range [start, end).

    Build windows with TimeWindow.resolve() so the day-wrap rule is applied
    consistently: an end before the start means the window crosses midnight.
    """

    start: datetime
    end: datetime

    @classmethod
    def resolve(cls, start: datetime, end: datetime) -> "TimeWindow":
        """
        Build a window, resolving a midnight crossing.

        Args:
            start: Window start
            end: Window end; if earlier than start, one day is added

        Returns:
            The resolved TimeWindow

        Raises:
            InvalidWindowError: If end is not strictly after start once the
                day-wrap is resolved, if the window ends later than the next
                calendar day, or if start and end mix naive and aware datetimes
        """
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise InvalidWindowError(
                "start and end must both be naive or both be timezone-aware",
                start=start,
                end=end,
            )

        if end < start:
            end = end + ONE_DAY

        if end <= start:
            raise InvalidWindowError(
                "end must be strictly after start", start=start, end=end
            )

        if (end.date() - start.date()).days > 1:
            raise InvalidWindowError(
                "window must end on the same or the next calendar day",
                start=start,
                end=end,
            )

        return cls(start=start, end=end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_hours(self) -> float:
        return self.duration / ONE_HOUR

    def overlaps(self, other: "TimeWindow") -> bool:
        """Half-open overlap: back-to-back windows do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> "TimeWindow":
        return cls(
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
        )


@dataclass(frozen=True)
class VehicleInfo:
    """Vehicle details supplied with a request. Opaque to the core."""

    plate: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"plate": self.plate, "description": self.description}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "VehicleInfo | None":
        if not data:
            return None
        return cls(plate=data.get("plate"), description=data.get("description"))


@dataclass(frozen=True)
class PaymentConfirmation:
    """
    Payment metadata recorded after an out-of-band charge succeeded.

    Attributes:
        reference: Payment reference issued by the external gateway
        method: Payment method label (e.g. "upi", "card", "net_banking")
        amount: Amount charged, when reported by the gateway
        paid_at: When the charge succeeded
    """

    reference: str
    method: str = "unknown"
    amount: int | None = None
    paid_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "method": self.method,
            "amount": self.amount,
            "paid_at": self.paid_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PaymentConfirmation | None":
        if not data:
            return None
        return cls(
            reference=data["reference"],
            method=data.get("method", "unknown"),
            amount=data.get("amount"),
            paid_at=datetime.fromisoformat(data["paid_at"]),
        )


@dataclass
class Reservation:
    """
    A time-bounded claim on one spot by one user, with a computed price.

    Reservations are treated as immutable snapshots: transitions produce a new
    instance via with_status(), with an incremented version.

    Attributes:
        reservation_id: Unique reservation identifier
        spot_id: Reserved spot
        user_id: Requester that owns the reservation
        window: Reserved time window
        unit_type: Spot type at booking time
        price: Price breakdown computed at booking time
        status: Lifecycle status
        created_at: Creation timestamp, used for listing order
        vehicle: Optional vehicle details
        payment: Payment metadata, once the payment collaborator reports success
        version: Optimistic concurrency version
        updated_at: Timestamp of the last status change
    """

    reservation_id: str
    spot_id: str
    user_id: str
    window: TimeWindow
    unit_type: SpotType
    price: PriceBreakdown
    status: ReservationStatus = ReservationStatus.UPCOMING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    vehicle: VehicleInfo | None = None
    payment: PaymentConfirmation | None = None
    version: int = 1
    updated_at: datetime | None = None

    @property
    def final_price(self) -> int:
        return self.price.final_price

    @property
    def is_paid(self) -> bool:
        return self.payment is not None

    def with_status(
        self, status: ReservationStatus, at: datetime | None = None
    ) -> "Reservation":
        """Return a copy moved to `status` with the version bumped."""
        return replace(
            self,
            status=status,
            version=self.version + 1,
            updated_at=at if at is not None else self.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        # Payment is stored separately by backends and merged on load.
        return {
            "reservation_id": self.reservation_id,
            "spot_id": self.spot_id,
            "user_id": self.user_id,
            "window": self.window.to_dict(),
            "unit_type": self.unit_type.value,
            "price": self.price.to_dict(),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "vehicle": self.vehicle.to_dict() if self.vehicle else None,
            "version": self.version,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        payment: PaymentConfirmation | None = None,
    ) -> "Reservation":
        updated_at = data.get("updated_at")
        return cls(
            reservation_id=data["reservation_id"],
            spot_id=data["spot_id"],
            user_id=data["user_id"],
            window=TimeWindow.from_dict(data["window"]),
            unit_type=SpotType(data["unit_type"]),
            price=PriceBreakdown.from_dict(data["price"]),
            status=ReservationStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            vehicle=VehicleInfo.from_dict(data.get("vehicle")),
            payment=payment,
            version=int(data.get("version", 1)),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


@dataclass(frozen=True)
class ReservationRequest:
    """Input to ReservationManager.create()."""

    spot_id: str
    user_id: str
    spot_type: SpotType
    start: datetime
    end: datetime
    vehicle: VehicleInfo | None = None


__all__ = [
    "PaymentConfirmation",
    "Reservation",
    "ReservationRequest",
    "ReservationStatus",
    "TimeWindow",
    "VehicleInfo",
    "derive_spot_status",
]
