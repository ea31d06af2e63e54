# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Base Backend for the parking reservation core.

This module defines the persistence contract the reservation manager depends
on. Backends store spots, reservations and payment metadata and apply
batches of mutations atomically with optimistic version checks.

Features:
- Atomic multi-record commit with per-record expected versions
- Version-free payment writes that never contend with status transitions
- Startup reconciliation of spot status against live reservations
"""

import abc
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Union

from ..types.reservation import (
    PaymentConfirmation,
    Reservation,
    ReservationStatus,
    derive_spot_status,
)
from ..types.spot import ParkingSpot, SpotStatus

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """
    Structured health check result for backend monitoring.

    Attributes:
        healthy: Whether the backend is operational
        backend_type: Type of backend (e.g., 'redis', 'memory')
        namespace: Backend namespace
        error: Error message if unhealthy
        metadata: Additional backend-specific information
    """

    healthy: bool
    backend_type: str
    namespace: str
    error: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class PutSpot:
    """
    Write a spot snapshot.

    The stored spot must currently be at `expected_version`; `spot` carries
    the new state and must have version expected_version + 1.
    """

    spot: ParkingSpot
    expected_version: int


@dataclass(frozen=True)
class PutReservation:
    """
    Write a reservation snapshot.

    `expected_version` is None for an insert (the id must not exist yet),
    otherwise the stored reservation must be at that version.
    """

    reservation: Reservation
    expected_version: int | None = None


@dataclass(frozen=True)
class PutPayment:
    """Attach payment metadata to an existing reservation. Not version checked."""

    reservation_id: str
    payment: PaymentConfirmation


Mutation = Union[PutSpot, PutReservation, PutPayment]


def bump_spot(spot: ParkingSpot, status: SpotStatus) -> PutSpot:
    """Build a PutSpot moving `spot` to `status` with the next version."""
    updated = ParkingSpot(
        spot_id=spot.spot_id,
        facility_id=spot.facility_id,
        spot_number=spot.spot_number,
        spot_type=spot.spot_type,
        status=status,
        version=spot.version + 1,
    )
    return PutSpot(spot=updated, expected_version=spot.version)


def sort_newest_first(reservations: Iterable[Reservation]) -> list[Reservation]:
    """Order reservations by created_at, most recent first."""
    return sorted(
        reservations,
        key=lambda r: (r.created_at.timestamp(), r.reservation_id),
        reverse=True,
    )


class BaseBackend(abc.ABC):
    """
    Abstract persistence backend for spots, reservations and payments.

    Implementations must make commit() all-or-nothing: either every mutation
    in the batch is applied, or none is and False is returned. Reads return
    fresh objects; callers never share instances with the store.
    """

    def __init__(self, namespace: str = "parking"):
        """
        Initialize the backend with a namespace for isolation.

        Args:
            namespace: Namespace for isolating data across deployments
        """
        self.namespace = namespace

    # ==========================================================================
    # Reads
    # ==========================================================================

    @abc.abstractmethod
    async def load_spot(self, spot_id: str) -> ParkingSpot | None:
        pass

    @abc.abstractmethod
    async def load_reservation(self, reservation_id: str) -> Reservation | None:
        """
        Load a reservation with its payment metadata merged in.

        Returns:
            The reservation, or None if unknown
        """
        pass

    @abc.abstractmethod
    async def list_spots(self) -> list[ParkingSpot]:
        pass

    @abc.abstractmethod
    async def list_reservations(
        self,
        user_id: str | None = None,
        spot_id: str | None = None,
        statuses: Sequence[ReservationStatus] | None = None,
    ) -> list[Reservation]:
        """
        List reservations matching every given filter.

        Args:
            user_id: Only reservations owned by this user
            spot_id: Only reservations on this spot
            statuses: Only reservations in one of these statuses

        Returns:
            Matching reservations, most recent created_at first
        """
        pass

    # ==========================================================================
    # Writes
    # ==========================================================================

    @abc.abstractmethod
    async def commit(self, mutations: Sequence[Mutation]) -> bool:
        """
        Atomically apply a batch of mutations.

        Args:
            mutations: PutSpot, PutReservation and PutPayment records

        Returns:
            True if every mutation was applied, False on a version conflict
            (in which case nothing was applied)

        Raises:
            BackendConnectionError: If the store is unreachable
            BackendOperationError: If the store rejected the operation
        """
        pass

    @abc.abstractmethod
    async def seed_spots(self, spots: Iterable[ParkingSpot]) -> int:
        """
        Insert catalog spots that are not stored yet.

        Existing spots keep their stored status and version.

        Returns:
            Number of spots inserted
        """
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Remove every stored record in this namespace."""
        pass

    # ==========================================================================
    # Health and Monitoring
    # ==========================================================================

    @abc.abstractmethod
    async def health_check(self) -> HealthCheckResult:
        pass

    async def close(self) -> None:  # noqa: B027
        """Release backend resources. Optional for in-process backends."""
        pass

    # ==========================================================================
    # Recovery (Shared Implementation)
    # ==========================================================================

    async def reconcile_on_startup(self) -> list[Reservation]:
        """
        Repair spot status left inconsistent by a crash between hold and commit.

        A spot whose stored status disagrees with its live reservations is
        rewritten to the derived status: held spots with no live reservation
        go back to available. Disabled spots are left alone. Spots that change
        concurrently are skipped; the next reconciliation picks them up.

        Returns:
            All live (upcoming or active) reservations
        """
        live = await self.list_reservations(
            statuses=(ReservationStatus.UPCOMING, ReservationStatus.ACTIVE)
        )
        by_spot: dict[str, list[ReservationStatus]] = defaultdict(list)
        for reservation in live:
            by_spot[reservation.spot_id].append(reservation.status)

        repairs = []
        for spot in await self.list_spots():
            if spot.status is SpotStatus.DISABLED:
                continue
            derived = derive_spot_status(by_spot.get(spot.spot_id, ()))
            if derived is not spot.status:
                logger.warning(
                    "Reconciling spot %s: stored %s, derived %s",
                    spot.spot_id,
                    spot.status.value,
                    derived.value,
                )
                repairs.append(bump_spot(spot, derived))

        repaired = 0
        for mutation in repairs:
            if await self.commit([mutation]):
                repaired += 1
            else:
                logger.warning(
                    "Spot %s changed during reconciliation, skipped",
                    mutation.spot.spot_id,
                )

        logger.info(
            "%s reconciliation: %d live reservations, %d spots repaired",
            self.__class__.__name__,
            len(live),
            repaired,
        )
        return live


__all__ = [
    "BaseBackend",
    "HealthCheckResult",
    "Mutation",
    "PutPayment",
    "PutReservation",
    "PutSpot",
    "bump_spot",
    "sort_newest_first",
]
