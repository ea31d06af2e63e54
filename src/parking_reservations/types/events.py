# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Change events broadcast by the ChangeNotifier.

Consumers must treat events as idempotent upserts keyed by entity id and
version: delivery is at-least-once, so the same event may arrive twice.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EventType(Enum):
    """Kinds of committed state changes."""

    CREATED = "created"
    CANCELLED = "cancelled"
    ACTIVATED = "activated"
    COMPLETED = "completed"
    PAID = "paid"
    SPOT_STATUS_CHANGED = "spot_status_changed"
    RESYNC = "resync"


class EntityKind(Enum):
    RESERVATION = "reservation"
    SPOT = "spot"
    STREAM = "stream"


@dataclass(frozen=True)
class ReservationEvent:
    """
    A committed mutation of a Reservation or Spot.

    Attributes:
        event_type: What happened
        entity_kind: Which kind of entity changed
        entity_id: Reservation id or spot id
        version: Entity version after the change
        payload: Serialized entity snapshot (to_dict() form)
        spot_id: Spot the change relates to, for filtering
        user_id: Owner of the reservation, for filtering (None for spot events)
        sequence: Publish sequence number, assigned by the notifier
        occurred_at: Commit timestamp
    """

    event_type: EventType
    entity_kind: EntityKind
    entity_id: str
    version: int
    payload: dict[str, Any] = field(default_factory=dict)
    spot_id: str | None = None
    user_id: str | None = None
    sequence: int = 0
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dedupe_key(self) -> tuple[str, str, int, str]:
        return (
            self.entity_kind.value,
            self.entity_id,
            self.version,
            self.event_type.value,
        )

    def with_sequence(self, sequence: int) -> "ReservationEvent":
        return replace(self, sequence=sequence)


__all__ = ["EntityKind", "EventType", "ReservationEvent"]
