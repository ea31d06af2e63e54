# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
MemoryBackend for the parking reservation core.

This module provides an in-memory backend implementation that doesn't require
Redis. Suitable for testing, development, and single-process deployments.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import Any

from ..types.reservation import PaymentConfirmation, Reservation, ReservationStatus
from ..types.spot import ParkingSpot
from .base import (
    BaseBackend,
    HealthCheckResult,
    Mutation,
    PutPayment,
    PutReservation,
    PutSpot,
    sort_newest_first,
)

logger = logging.getLogger(__name__)


class MemoryBackend(BaseBackend):
    """
    An in-memory backend.

    Records are stored in their serialized (to_dict) form so that callers
    never share mutable instances with the store, mirroring what a remote
    backend returns.

    Key Features:
    - Pure in-memory dict-based storage
    - Async-safe, all-or-nothing commits under one asyncio.Lock
    - Secondary indexes by user and by spot for listing

    Note:
        This backend is NOT suitable for:
        - Multi-process applications
        - Deployments that must survive a restart
    """

    def __init__(self, namespace: str = "parking_memory") -> None:
        """
        Initialize the in-memory backend.

        Args:
            namespace: Namespace label reported in health checks
        """
        super().__init__(namespace)

        self._spots: dict[str, dict[str, Any]] = {}
        self._reservations: dict[str, dict[str, Any]] = {}
        self._payments: dict[str, dict[str, Any]] = {}

        # Secondary indexes: user_id / spot_id -> reservation ids
        self._by_user: dict[str, set[str]] = defaultdict(set)
        self._by_spot: dict[str, set[str]] = defaultdict(set)

        self._commits = 0
        self._conflicts = 0

        self._lock = asyncio.Lock()

        logger.debug(f"Initialized MemoryBackend with namespace '{namespace}'")

    def _build_reservation(self, reservation_id: str) -> Reservation:
        payment = PaymentConfirmation.from_dict(self._payments.get(reservation_id))
        return Reservation.from_dict(self._reservations[reservation_id], payment)

    # Reads

    async def load_spot(self, spot_id: str) -> ParkingSpot | None:
        async with self._lock:
            data = self._spots.get(spot_id)
            return ParkingSpot.from_dict(data) if data else None

    async def load_reservation(self, reservation_id: str) -> Reservation | None:
        async with self._lock:
            if reservation_id not in self._reservations:
                return None
            return self._build_reservation(reservation_id)

    async def list_spots(self) -> list[ParkingSpot]:
        async with self._lock:
            return [ParkingSpot.from_dict(data) for data in self._spots.values()]

    async def list_reservations(
        self,
        user_id: str | None = None,
        spot_id: str | None = None,
        statuses: Sequence[ReservationStatus] | None = None,
    ) -> list[Reservation]:
        async with self._lock:
            candidates: set[str] = set(self._reservations)
            if user_id is not None:
                candidates &= self._by_user.get(user_id, set())
            if spot_id is not None:
                candidates &= self._by_spot.get(spot_id, set())
            wanted = {s.value for s in statuses} if statuses is not None else None

            found = [
                self._build_reservation(rid)
                for rid in candidates
                if wanted is None or self._reservations[rid]["status"] in wanted
            ]
        return sort_newest_first(found)

    # Writes

    def _check_locked(self, mutation: Mutation) -> bool:
        """Whether a mutation's version precondition holds. Caller holds the lock."""
        if isinstance(mutation, PutSpot):
            stored = self._spots.get(mutation.spot.spot_id)
            current = int(stored["version"]) if stored else 0
            return current == mutation.expected_version
        if isinstance(mutation, PutReservation):
            stored = self._reservations.get(mutation.reservation.reservation_id)
            if mutation.expected_version is None:
                return stored is None
            return (
                stored is not None
                and int(stored["version"]) == mutation.expected_version
            )
        return mutation.reservation_id in self._reservations

    def _apply_locked(self, mutation: Mutation) -> None:
        if isinstance(mutation, PutSpot):
            self._spots[mutation.spot.spot_id] = mutation.spot.to_dict()
        elif isinstance(mutation, PutReservation):
            reservation = mutation.reservation
            self._reservations[reservation.reservation_id] = reservation.to_dict()
            self._by_user[reservation.user_id].add(reservation.reservation_id)
            self._by_spot[reservation.spot_id].add(reservation.reservation_id)
        elif isinstance(mutation, PutPayment):
            self._payments[mutation.reservation_id] = mutation.payment.to_dict()

    async def commit(self, mutations: Sequence[Mutation]) -> bool:
        async with self._lock:
            # Validate every precondition before touching anything.
            for mutation in mutations:
                if not self._check_locked(mutation):
                    self._conflicts += 1
                    logger.debug(f"Commit rejected on version check: {mutation!r}")
                    return False
            for mutation in mutations:
                self._apply_locked(mutation)
            self._commits += 1
            return True

    async def seed_spots(self, spots: Iterable[ParkingSpot]) -> int:
        inserted = 0
        async with self._lock:
            for spot in spots:
                if spot.spot_id not in self._spots:
                    self._spots[spot.spot_id] = spot.to_dict()
                    inserted += 1
        logger.debug(f"Seeded {inserted} spots")
        return inserted

    async def clear(self) -> None:
        async with self._lock:
            self._spots.clear()
            self._reservations.clear()
            self._payments.clear()
            self._by_user.clear()
            self._by_spot.clear()
            self._commits = 0
            self._conflicts = 0
            logger.debug("MemoryBackend cleared")

    # Health and Monitoring

    async def health_check(self) -> HealthCheckResult:
        async with self._lock:
            return HealthCheckResult(
                healthy=True,
                backend_type="memory",
                namespace=self.namespace,
                metadata={
                    "spots_count": len(self._spots),
                    "reservations_count": len(self._reservations),
                    "payments_count": len(self._payments),
                    "commits": self._commits,
                    "version_conflicts": self._conflicts,
                },
            )


__all__ = ["MemoryBackend"]
