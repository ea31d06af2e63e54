# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
EventProjection: idempotent read model built from the change feed.

Events are upserts keyed by (entity kind, entity id). An event is applied
only when its version is newer than what the projection already holds, so
duplicated or replayed events are harmless. PAID events keep the reservation
version unchanged and are merged into the stored snapshot instead.
"""

import logging
from collections.abc import Iterable
from typing import Any

from ..types.events import EntityKind, EventType, ReservationEvent
from ..types.reservation import PaymentConfirmation, Reservation
from ..types.spot import ParkingSpot

logger = logging.getLogger(__name__)


class EventProjection:
    """
    Latest known state of reservations and spots.

    Usable directly as a subscription handler:

        projection = EventProjection()
        unsubscribe = service.subscribe(projection.apply)

    On RESYNC the projection flags itself stale; the owner re-lists state and
    calls reset() with the fresh snapshot.
    """

    def __init__(self) -> None:
        self._reservations: dict[str, dict[str, Any]] = {}
        self._spots: dict[str, dict[str, Any]] = {}
        self.needs_resync = False
        self.applied = 0
        self.ignored = 0
        self.last_sequence = 0

    def _store_for(self, kind: EntityKind) -> dict[str, dict[str, Any]] | None:
        if kind is EntityKind.RESERVATION:
            return self._reservations
        if kind is EntityKind.SPOT:
            return self._spots
        return None

    def apply(self, event: ReservationEvent) -> bool:
        """
        Apply one event.

        Returns:
            True if the projection changed, False if the event was stale,
            a duplicate or a RESYNC marker
        """
        self.last_sequence = max(self.last_sequence, event.sequence)

        if event.event_type is EventType.RESYNC:
            self.needs_resync = True
            logger.debug("Projection marked stale by %s", event.entity_id)
            return False

        store = self._store_for(event.entity_kind)
        if store is None:
            self.ignored += 1
            return False

        current = store.get(event.entity_id)
        current_version = int(current["version"]) if current else 0

        if event.version > current_version:
            snapshot = dict(event.payload)
            if current and "payment" in current and "payment" not in snapshot:
                snapshot["payment"] = current["payment"]
            store[event.entity_id] = snapshot
        elif (
            event.event_type is EventType.PAID
            and current is not None
            and event.version == current_version
            and current.get("payment") != event.payload.get("payment")
        ):
            store[event.entity_id] = {**current, "payment": event.payload.get("payment")}
        else:
            self.ignored += 1
            return False

        self.applied += 1
        return True

    def reset(
        self,
        reservations: Iterable[Reservation] = (),
        spots: Iterable[ParkingSpot] = (),
    ) -> None:
        """Replace the projection with a freshly listed snapshot."""
        self._reservations = {}
        for reservation in reservations:
            data = reservation.to_dict()
            if reservation.payment is not None:
                data["payment"] = reservation.payment.to_dict()
            self._reservations[reservation.reservation_id] = data
        self._spots = {spot.spot_id: spot.to_dict() for spot in spots}
        self.needs_resync = False

    def reservation(self, reservation_id: str) -> Reservation | None:
        data = self._reservations.get(reservation_id)
        if data is None:
            return None
        return Reservation.from_dict(
            data, payment=PaymentConfirmation.from_dict(data.get("payment"))
        )

    def spot(self, spot_id: str) -> ParkingSpot | None:
        data = self._spots.get(spot_id)
        return ParkingSpot.from_dict(data) if data is not None else None

    def reservations(self) -> list[Reservation]:
        return [
            r for r in (self.reservation(rid) for rid in self._reservations) if r
        ]

    def version_of(self, kind: EntityKind, entity_id: str) -> int:
        store = self._store_for(kind)
        if store is None or entity_id not in store:
            return 0
        return int(store[entity_id]["version"])

    def __len__(self) -> int:
        return len(self._reservations) + len(self._spots)


__all__ = ["EventProjection"]
