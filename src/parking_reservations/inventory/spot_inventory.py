# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""SpotInventory: per-spot availability with atomic check-and-hold."""

import asyncio
import contextlib
import heapq
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime

from ..exceptions import ConflictError, NotFoundError, SpotDisabledError
from ..observability.constants import ACTIVE_HOLDS
from ..observability.protocols import MetricsCollectorProtocol
from ..types.reservation import (
    Reservation,
    ReservationStatus,
    TimeWindow,
    derive_spot_status,
)
from ..types.spot import ParkingSpot, SpotStatus, SpotType
from .hold import DueTransitions, ReservationToken, SpotHold

logger = logging.getLogger(__name__)

# Heap entries: (instant as POSIX timestamp, spot_id, reservation_id)
_HeapEntry = tuple[float, str, str]


@dataclass(frozen=True)
class Occupancy:
    """Spot counts for a facility (or for every spot when facility_id is None)."""

    facility_id: str | None
    total: int
    by_status: dict[SpotStatus, int] = field(default_factory=dict)

    @property
    def occupied(self) -> int:
        """Number of spots that are not available."""
        return self.total - self.by_status.get(SpotStatus.AVAILABLE, 0)

    @property
    def available(self) -> int:
        return self.by_status.get(SpotStatus.AVAILABLE, 0)

    @property
    def rate(self) -> float:
        return self.occupied / self.total if self.total else 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "facility_id": self.facility_id,
            "total": self.total,
            "occupied": self.occupied,
            "available": self.available,
            "by_status": {s.value: n for s, n in self.by_status.items()},
        }


class SpotInventory:
    """
    Authoritative in-process view of spot availability.

    Each spot has its own asyncio.Lock, so check-and-hold is atomic per spot
    while different spots proceed concurrently. Holds are indexed by spot and
    by reservation id; two min-heaps ordered by window start and window end
    drive lifecycle transitions. Heap entries are validated lazily against
    the live holds, so removing a hold never touches the heaps.

    The inventory makes no backend calls. Callers that persist changes use
    the holding()/releasing()/activating()/disabling() context managers, which
    keep the spot locked for the duration of the commit and roll the change
    back unless the token is confirmed.
    """

    def __init__(self, metrics_collector: MetricsCollectorProtocol | None = None):
        self._metrics = metrics_collector

        self._spots: dict[str, ParkingSpot] = {}
        self._holds: dict[str, dict[str, SpotHold]] = {}
        self._disabled: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}

        # Secondary index: reservation_id -> spot_id
        self._spot_by_reservation: dict[str, str] = {}

        self._start_heap: list[_HeapEntry] = []
        self._end_heap: list[_HeapEntry] = []
        self._hold_total = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(
        self,
        spots: Iterable[ParkingSpot],
        live_reservations: Iterable[Reservation] = (),
    ) -> None:
        """
        Replace all state from catalog spots and live reservations.

        Called at startup, before any concurrent access.
        """
        self._spots.clear()
        self._holds.clear()
        self._disabled.clear()
        self._spot_by_reservation.clear()
        self._start_heap.clear()
        self._end_heap.clear()

        for spot in spots:
            self._spots[spot.spot_id] = replace(spot)
            self._holds[spot.spot_id] = {}
            self._locks.setdefault(spot.spot_id, asyncio.Lock())
            if spot.status is SpotStatus.DISABLED:
                self._disabled.add(spot.spot_id)

        loaded = 0
        for reservation in live_reservations:
            if not reservation.status.is_live:
                continue
            if reservation.spot_id not in self._spots:
                logger.warning(
                    "Skipping reservation %s for unknown spot %s",
                    reservation.reservation_id,
                    reservation.spot_id,
                )
                continue
            self._add_hold(
                SpotHold(
                    reservation_id=reservation.reservation_id,
                    spot_id=reservation.spot_id,
                    window=reservation.window,
                    status=reservation.status,
                )
            )
            loaded += 1

        self._hold_total = loaded
        self._report_holds()
        logger.info("Inventory loaded: %d spots, %d live holds", len(self._spots), loaded)

    async def refresh(
        self, spot: ParkingSpot, live_reservations: Iterable[Reservation]
    ) -> None:
        """Replace one spot's record and holds with a fresh backend read."""
        async with self._lock_for(spot.spot_id):
            for reservation_id in list(self._holds[spot.spot_id]):
                self._remove_hold(spot.spot_id, reservation_id)
            self._spots[spot.spot_id] = replace(spot)
            if spot.status is SpotStatus.DISABLED:
                self._disabled.add(spot.spot_id)
            else:
                self._disabled.discard(spot.spot_id)
            for reservation in live_reservations:
                if reservation.status.is_live:
                    self._add_hold(
                        SpotHold(
                            reservation_id=reservation.reservation_id,
                            spot_id=spot.spot_id,
                            window=reservation.window,
                            status=reservation.status,
                        )
                    )
            self._hold_total = sum(len(h) for h in self._holds.values())
        self._report_holds()
        logger.debug("Refreshed spot %s at version %d", spot.spot_id, spot.version)

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the spot lock)
    # ------------------------------------------------------------------

    def _lock_for(self, spot_id: str) -> asyncio.Lock:
        if spot_id not in self._spots:
            raise NotFoundError(spot_id, entity_kind="spot")
        return self._locks[spot_id]

    @staticmethod
    def _ts(instant: datetime) -> float:
        return instant.timestamp()

    def _add_hold(self, hold: SpotHold) -> None:
        self._holds[hold.spot_id][hold.reservation_id] = hold
        self._spot_by_reservation[hold.reservation_id] = hold.spot_id
        entry = (hold.spot_id, hold.reservation_id)
        heapq.heappush(self._start_heap, (self._ts(hold.window.start), *entry))
        heapq.heappush(self._end_heap, (self._ts(hold.window.end), *entry))

    def _remove_hold(self, spot_id: str, reservation_id: str) -> SpotHold | None:
        hold = self._holds[spot_id].pop(reservation_id, None)
        if hold is not None:
            self._spot_by_reservation.pop(reservation_id, None)
        return hold

    def _derive(self, spot_id: str) -> SpotStatus:
        return derive_spot_status(
            (h.status for h in self._holds[spot_id].values()),
            disabled=spot_id in self._disabled,
        )

    def _check_free(self, spot_id: str, window: TimeWindow, reservation_id: str) -> None:
        if spot_id in self._disabled:
            raise SpotDisabledError(spot_id)
        for hold in self._holds[spot_id].values():
            if hold.reservation_id == reservation_id or hold.window.overlaps(window):
                raise ConflictError(
                    f"Spot {spot_id} is already reserved for an overlapping window",
                    spot_id=spot_id,
                    conflicting_reservation_id=hold.reservation_id,
                )

    def _report_holds(self) -> None:
        if self._metrics is not None:
            self._metrics.set_gauge(ACTIVE_HOLDS, self._hold_total)

    @contextlib.asynccontextmanager
    async def _changing(
        self,
        spot_id: str,
        reservation_id: str | None,
        change: Callable[[], tuple[SpotHold | None, bool]],
    ) -> AsyncIterator[ReservationToken]:
        """
        Apply `change` under the spot lock and keep it only if confirmed.

        `change` mutates the spot's holds/disabled flag and returns the
        affected hold and whether anything changed. It may raise to refuse
        the change, in which case nothing has been modified.
        """
        async with self._lock_for(spot_id):
            saved_holds = dict(self._holds[spot_id])
            was_disabled = spot_id in self._disabled

            hold, changed = change()
            token = ReservationToken(
                spot_id=spot_id,
                reservation_id=reservation_id,
                spot=self._spots[spot_id],
                new_status=self._derive(spot_id),
                hold=hold,
                changed=changed,
            )

            def restore() -> None:
                for rid in set(self._holds[spot_id]) - set(saved_holds):
                    self._spot_by_reservation.pop(rid, None)
                for rid in saved_holds:
                    self._spot_by_reservation[rid] = spot_id
                self._holds[spot_id] = saved_holds
                if was_disabled:
                    self._disabled.add(spot_id)
                else:
                    self._disabled.discard(spot_id)

            try:
                yield token
            except BaseException:
                restore()
                raise

            if token.confirmed:
                self._spots[spot_id] = token.next_spot
                self._hold_total += len(self._holds[spot_id]) - len(saved_holds)
            else:
                restore()
        self._report_holds()

    # ------------------------------------------------------------------
    # Transactional changes
    # ------------------------------------------------------------------

    def holding(
        self, spot_id: str, window: TimeWindow, reservation_id: str
    ) -> contextlib.AbstractAsyncContextManager[ReservationToken]:
        """
        Place a hold for the duration of the block.

        Raises (on entry):
            NotFoundError: Unknown spot
            SpotDisabledError: Spot is disabled
            ConflictError: Window overlaps a live hold on the spot

        Example:
            async with inventory.holding(spot_id, window, rid) as token:
                if await backend.commit([...]):
                    token.confirm()
        """

        def place() -> tuple[SpotHold, bool]:
            self._check_free(spot_id, window, reservation_id)
            hold = SpotHold(reservation_id=reservation_id, spot_id=spot_id, window=window)
            self._add_hold(hold)
            return hold, True

        return self._changing(spot_id, reservation_id, place)

    def releasing(
        self, spot_id: str, reservation_id: str
    ) -> contextlib.AbstractAsyncContextManager[ReservationToken]:
        """
        Remove a hold for the duration of the block.

        Idempotent: if no hold exists the token has changed=False and hold=None.
        """

        def drop() -> tuple[SpotHold | None, bool]:
            hold = self._remove_hold(spot_id, reservation_id)
            return hold, hold is not None

        return self._changing(spot_id, reservation_id, drop)

    def activating(
        self, spot_id: str, reservation_id: str
    ) -> contextlib.AbstractAsyncContextManager[ReservationToken]:
        """Mark a hold ACTIVE (spot becomes occupied) for the duration of the block."""

        def mark_active() -> tuple[SpotHold | None, bool]:
            hold = self._holds[spot_id].get(reservation_id)
            if hold is None or hold.is_active:
                return hold, False
            active = replace(hold, status=ReservationStatus.ACTIVE)
            self._holds[spot_id][reservation_id] = active
            return active, True

        return self._changing(spot_id, reservation_id, mark_active)

    def disabling(
        self, spot_id: str, disabled: bool = True
    ) -> contextlib.AbstractAsyncContextManager[ReservationToken]:
        """
        Set or clear the maintenance flag for the duration of the block.

        Existing holds are kept while disabled; clearing the flag returns the
        spot to the status derived from its holds.
        """

        def toggle() -> tuple[None, bool]:
            changed = (spot_id in self._disabled) != disabled
            if disabled:
                self._disabled.add(spot_id)
            else:
                self._disabled.discard(spot_id)
            return None, changed

        return self._changing(spot_id, None, toggle)

    # ------------------------------------------------------------------
    # Direct (in-memory only) changes
    # ------------------------------------------------------------------

    async def reserve(
        self, spot_id: str, window: TimeWindow, reservation_id: str
    ) -> ReservationToken:
        """Atomically check the spot and place a hold."""
        async with self.holding(spot_id, window, reservation_id) as token:
            token.confirm()
        return token

    async def release(self, spot_id: str, reservation_id: str) -> bool:
        """
        Drop a hold.

        Returns:
            True if a hold was removed, False if it was already released
        """
        async with self.releasing(spot_id, reservation_id) as token:
            token.confirm()
        return token.changed

    async def activate(self, spot_id: str, reservation_id: str) -> bool:
        async with self.activating(spot_id, reservation_id) as token:
            token.confirm()
        return token.changed

    async def disable(self, spot_id: str) -> SpotStatus:
        async with self.disabling(spot_id, True) as token:
            token.confirm()
        return token.new_status

    async def enable(self, spot_id: str) -> SpotStatus:
        async with self.disabling(spot_id, False) as token:
            token.confirm()
        return token.new_status

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, spot_id: str) -> SpotStatus:
        if spot_id not in self._spots:
            raise NotFoundError(spot_id, entity_kind="spot")
        return self._derive(spot_id)

    def get_spot(self, spot_id: str) -> ParkingSpot:
        spot = self._spots.get(spot_id)
        if spot is None:
            raise NotFoundError(spot_id, entity_kind="spot")
        return replace(spot, status=self._derive(spot_id))

    def has_spot(self, spot_id: str) -> bool:
        return spot_id in self._spots

    def list_spots(self, facility_id: str | None = None) -> list[ParkingSpot]:
        return [
            self.get_spot(spot_id)
            for spot_id, spot in self._spots.items()
            if facility_id is None or spot.facility_id == facility_id
        ]

    def holds_for(self, spot_id: str) -> list[SpotHold]:
        """Live holds on a spot, ordered by window start."""
        if spot_id not in self._spots:
            raise NotFoundError(spot_id, entity_kind="spot")
        return sorted(self._holds[spot_id].values(), key=lambda h: self._ts(h.window.start))

    def spot_for(self, reservation_id: str) -> str | None:
        return self._spot_by_reservation.get(reservation_id)

    def find_available(
        self,
        spot_type: SpotType,
        window: TimeWindow,
        facility_id: str | None = None,
    ) -> list[ParkingSpot]:
        """Spots of `spot_type` free for the whole window, ordered by spot number."""
        free = []
        for spot_id, spot in self._spots.items():
            if spot.spot_type is not spot_type or spot_id in self._disabled:
                continue
            if facility_id is not None and spot.facility_id != facility_id:
                continue
            if any(h.window.overlaps(window) for h in self._holds[spot_id].values()):
                continue
            free.append(self.get_spot(spot_id))
        return sorted(free, key=lambda s: (s.facility_id, s.spot_number))

    def occupancy(self, facility_id: str | None = None) -> Occupancy:
        counts: dict[SpotStatus, int] = dict.fromkeys(SpotStatus, 0)
        total = 0
        for spot_id, spot in self._spots.items():
            if facility_id is not None and spot.facility_id != facility_id:
                continue
            counts[self._derive(spot_id)] += 1
            total += 1
        return Occupancy(facility_id=facility_id, total=total, by_status=counts)

    @property
    def hold_count(self) -> int:
        return self._hold_total

    def due_transitions(self, now: datetime) -> DueTransitions:
        """
        Holds whose window has started (still UPCOMING) or ended.

        Due entries stay queued until the hold itself changes, so a
        transition that fails to commit is offered again on the next call.
        """
        cutoff = self._ts(now)

        def drain(
            heap: list[_HeapEntry], wanted: Callable[[SpotHold], bool]
        ) -> list[SpotHold]:
            due: list[SpotHold] = []
            keep: list[_HeapEntry] = []
            seen: set[str] = set()
            while heap and heap[0][0] <= cutoff:
                entry = heapq.heappop(heap)
                _, spot_id, reservation_id = entry
                hold = self._holds.get(spot_id, {}).get(reservation_id)
                if hold is None or reservation_id in seen or not wanted(hold):
                    continue  # stale or duplicate entry
                seen.add(reservation_id)
                due.append(hold)
                keep.append(entry)
            for entry in keep:
                heapq.heappush(heap, entry)
            return due

        complete = drain(self._end_heap, lambda h: True)
        completing = {h.reservation_id for h in complete}
        activate = drain(
            self._start_heap,
            lambda h: not h.is_active and h.reservation_id not in completing,
        )
        return DueTransitions(activate=activate, complete=complete)


__all__ = ["Occupancy", "SpotInventory"]
