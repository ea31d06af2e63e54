# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
ReservationManager: orchestrates the reservation lifecycle.

Every mutation follows the same shape: take the spot lock through a
SpotInventory context manager, commit the new records to the backend in one
optimistic batch, confirm the in-memory change, then publish events while
the lock is still held. A failed or conflicting commit leaves the inventory
as it was.

Persistence calls are bounded by asyncio.wait_for. Timeouts and backend
errors are retried with exponential backoff and then surface as
PersistenceError. Version conflicts mean another writer got there first:
the spot is re-read from the backend and the operation is either rejected
(create) or re-evaluated (cancel).
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from ..backends.base import BaseBackend, Mutation, PutPayment, PutReservation, PutSpot
from ..config import ReservationConfig
from ..exceptions import (
    AlreadyCancelledError,
    BackendError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    InvalidWindowError,
    NotFoundError,
    PersistenceError,
    ReservationError,
    SpotDisabledError,
)
from ..inventory.hold import ReservationToken, SpotHold
from ..inventory.spot_inventory import SpotInventory
from ..notifications.notifier import ChangeNotifier
from ..observability.constants import (
    LIFECYCLE_SWEEPS_TOTAL,
    PAYMENTS_RECORDED_TOTAL,
    PERSISTENCE_FAILURES_TOTAL,
    PERSISTENCE_LATENCY_SECONDS,
    PERSISTENCE_RETRIES_TOTAL,
    RESERVATION_CONFLICTS_TOTAL,
    RESERVATIONS_ACTIVATED_TOTAL,
    RESERVATIONS_CANCELLED_TOTAL,
    RESERVATIONS_COMPLETED_TOTAL,
    RESERVATIONS_CREATED_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from ..pricing.calculator import PricingCalculator
from ..protocols.identity import IdentityProtocol, OwnerIdentity
from ..types.events import EntityKind, EventType, ReservationEvent
from ..types.price import PriceBreakdown
from ..types.reservation import (
    PaymentConfirmation,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    TimeWindow,
)
from ..types.spot import ParkingSpot, SpotType
from .stats import UserStats, compute_user_stats

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]

# Small jitter factor keeps concurrent retries from lining up
BACKOFF_JITTER_FACTOR = 0.1

# Attempts to re-evaluate a cancel after version conflicts
CONFLICT_RETRY_LIMIT = 3

LIVE_STATUSES = (ReservationStatus.UPCOMING, ReservationStatus.ACTIVE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_reservation_id() -> str:
    return f"rsv_{uuid.uuid4().hex}"


@dataclass
class SweepResult:
    """Outcome of one advance_lifecycle() pass."""

    activated: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.activated) + len(self.completed)


class ReservationManager:
    """
    Creates, cancels and advances reservations.

    The manager is the only writer: it owns the spot inventory, the backend
    and the notifier, and keeps them consistent with each other.
    """

    def __init__(
        self,
        backend: BaseBackend,
        inventory: SpotInventory,
        notifier: ChangeNotifier,
        calculator: PricingCalculator | None = None,
        identity: IdentityProtocol | None = None,
        config: ReservationConfig | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.backend = backend
        self.inventory = inventory
        self.notifier = notifier
        self.calculator = calculator or PricingCalculator(
            metrics_collector=metrics_collector
        )
        self.identity = identity or OwnerIdentity()
        self.config = config or ReservationConfig()
        self.metrics_collector = metrics_collector
        self._clock = clock or utc_now
        self._new_id = id_factory or new_reservation_id

        self._running = False
        self._sweep_task: asyncio.Task[None] | None = None
        self._shutdown_lock = asyncio.Lock()

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Metrics helpers
    # ------------------------------------------------------------------

    def _count(self, name: str, labels: dict[str, str] | None = None) -> None:
        if self.metrics_collector is not None:
            self.metrics_collector.inc_counter(name, labels=labels)

    def _count_conflict(self, reason: str) -> None:
        self._count(RESERVATION_CONFLICTS_TOTAL, {"reason": reason})

    # ------------------------------------------------------------------
    # Persistence with timeout and retry
    # ------------------------------------------------------------------

    def calculate_backoff(self, attempt: int) -> float:
        """
        Exponential backoff delay before retry number `attempt` (0-based).

        Returns:
            Delay in seconds, capped at config.max_retry_backoff
        """
        delay = self.config.persistence_retry_backoff * (2**attempt)
        delay = min(delay, self.config.max_retry_backoff)
        jitter = delay * BACKOFF_JITTER_FACTOR * (time.time() % 1)
        return float(delay + jitter)

    async def _persist(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """
        Run a backend call with a timeout, retrying transient failures.

        Args:
            operation: Name used in logs and metric labels
            call: Zero-argument factory producing a fresh awaitable per attempt

        Raises:
            PersistenceError: If every attempt timed out or failed
        """
        attempts = self.config.persistence_retries + 1
        labels = {"operation": operation}

        for attempt in range(attempts):
            started = time.perf_counter()
            try:
                result = await asyncio.wait_for(
                    call(), timeout=self.config.persistence_timeout
                )
            except (asyncio.TimeoutError, BackendError) as e:
                if self.metrics_collector is not None:
                    self.metrics_collector.observe_histogram(
                        PERSISTENCE_LATENCY_SECONDS,
                        time.perf_counter() - started,
                        labels=labels,
                    )
                reason = "timeout" if isinstance(e, asyncio.TimeoutError) else "backend"
                if attempt + 1 < attempts:
                    delay = self.calculate_backoff(attempt)
                    logger.warning(
                        "Persistence %s failed (%s), retrying in %.3fs",
                        operation,
                        reason,
                        delay,
                    )
                    self._count(PERSISTENCE_RETRIES_TOTAL, labels)
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    "Persistence %s failed after %d attempts: %s",
                    operation,
                    attempts,
                    str(e) or reason,
                )
                self._count(
                    PERSISTENCE_FAILURES_TOTAL, {"operation": operation, "reason": reason}
                )
                raise PersistenceError(
                    f"{operation} failed after {attempts} attempts ({reason})",
                    operation=operation,
                    attempts=attempts,
                ) from e

            if self.metrics_collector is not None:
                self.metrics_collector.observe_histogram(
                    PERSISTENCE_LATENCY_SECONDS,
                    time.perf_counter() - started,
                    labels=labels,
                )
            return result

        raise AssertionError("unreachable")  # pragma: no cover

    async def _commit(
        self,
        operation: str,
        mutations: Sequence[Mutation],
        expected: Reservation | None = None,
    ) -> bool:
        """
        Commit a batch, retrying transient failures.

        When `expected` is given and a retry is rejected after an earlier
        attempt timed out or raised, the backend is checked for `expected`:
        the earlier attempt may have been applied, and the retry's version
        conflict is then our own write. A rejection on the first attempt is
        always a conflict with another writer.
        """
        attempts = 0

        def attempt() -> Awaitable[bool]:
            nonlocal attempts
            attempts += 1
            return self.backend.commit(mutations)

        if await self._persist(operation, attempt):
            return True
        if expected is None or attempts == 1:
            return False
        return await self._landed(expected)

    async def _load(self, reservation_id: str) -> Reservation | None:
        return await self._persist(
            "load_reservation", lambda: self.backend.load_reservation(reservation_id)
        )

    async def _landed(self, expected: Reservation) -> bool:
        """Whether `expected` is what the backend now stores."""
        stored = await self._load(expected.reservation_id)
        return (
            stored is not None
            and stored.version == expected.version
            and stored.status is expected.status
        )

    async def _resync_spot(self, spot_id: str) -> None:
        """Replace the inventory's view of a spot with the backend's."""
        spot = await self._persist("load_spot", lambda: self.backend.load_spot(spot_id))
        if spot is None:
            logger.warning("Spot %s vanished from the backend during resync", spot_id)
            return
        live = await self._persist(
            "list_reservations",
            lambda: self.backend.list_reservations(spot_id=spot_id, statuses=LIVE_STATUSES),
        )
        await self.inventory.refresh(spot, live)

    # ------------------------------------------------------------------
    # Events (published while the spot lock is held)
    # ------------------------------------------------------------------

    def _publish_reservation(
        self, event_type: EventType, reservation: Reservation, at: datetime
    ) -> None:
        payload = reservation.to_dict()
        if reservation.payment is not None:
            payload["payment"] = reservation.payment.to_dict()
        self.notifier.publish(
            ReservationEvent(
                event_type=event_type,
                entity_kind=EntityKind.RESERVATION,
                entity_id=reservation.reservation_id,
                version=reservation.version,
                payload=payload,
                spot_id=reservation.spot_id,
                user_id=reservation.user_id,
                occurred_at=at,
            )
        )

    def _publish_spot_change(self, token: ReservationToken, at: datetime) -> None:
        if not token.status_changed:
            return
        spot = token.next_spot
        self.notifier.publish(
            ReservationEvent(
                event_type=EventType.SPOT_STATUS_CHANGED,
                entity_kind=EntityKind.SPOT,
                entity_id=spot.spot_id,
                version=spot.version,
                payload=spot.to_dict(),
                spot_id=spot.spot_id,
                occurred_at=at,
            )
        )

    @staticmethod
    def _spot_put(token: ReservationToken) -> PutSpot:
        # Every commit bumps the spot version, so writers on other
        # instances sharing the backend conflict on the spot record.
        return PutSpot(spot=token.next_spot, expected_version=token.spot.version)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def quote(self, spot_type: SpotType, start: datetime, end: datetime) -> PriceBreakdown:
        """Price a window without reserving anything."""
        return self.calculator.quote(spot_type, start, end)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _validate(self, request: ReservationRequest, now: datetime) -> TimeWindow:
        if (request.start.tzinfo is None) != (now.tzinfo is None):
            raise InvalidWindowError(
                "window must use the same timezone awareness as the service clock",
                start=request.start,
                end=request.end,
            )
        window = TimeWindow.resolve(request.start, request.end)
        if window.start < now - timedelta(seconds=self.config.past_start_tolerance):
            raise InvalidWindowError(
                "window starts in the past", start=window.start, end=window.end
            )

        spot = self.inventory.get_spot(request.spot_id)
        if spot.spot_type is not request.spot_type:
            raise InvalidWindowError(
                f"spot {spot.spot_id} is {spot.spot_type.value}, "
                f"not {request.spot_type.value}",
                start=window.start,
                end=window.end,
            )
        return window

    async def create(self, request: ReservationRequest) -> Reservation:
        """
        Reserve a spot for a window.

        Returns:
            The committed reservation, UPCOMING at version 1

        Raises:
            InvalidWindowError: Malformed, past or mismatched window, or a
                spot type that differs from the spot's
            NotFoundError: Unknown spot
            ConflictError: The window overlaps a live reservation, or the
                spot changed concurrently (SpotDisabledError when disabled)
            PersistenceError: The backend failed after retries
        """
        now = self._clock()
        window = self._validate(request, now)
        price = self.calculator.quote_window(request.spot_type, window)

        reservation = Reservation(
            reservation_id=self._new_id(),
            spot_id=request.spot_id,
            user_id=request.user_id,
            window=window,
            unit_type=request.spot_type,
            price=price,
            status=ReservationStatus.UPCOMING,
            created_at=now,
            vehicle=request.vehicle,
            version=1,
            updated_at=now,
        )

        try:
            async with self.inventory.holding(
                request.spot_id, window, reservation.reservation_id
            ) as token:
                mutations: list[Mutation] = [
                    PutReservation(reservation),
                    self._spot_put(token),
                ]
                if await self._commit("create", mutations, expected=reservation):
                    token.confirm()
                    self._publish_reservation(EventType.CREATED, reservation, now)
                    self._publish_spot_change(token, now)
        except SpotDisabledError:
            self._count_conflict("disabled")
            raise
        except ConflictError as e:
            self._count_conflict("overlap")
            logger.debug(
                "Create on %s rejected: overlaps %s",
                request.spot_id,
                e.conflicting_reservation_id,
            )
            raise

        if not token.confirmed:
            self._count_conflict("version")
            logger.warning(
                "Spot %s changed concurrently during create, resyncing", request.spot_id
            )
            await self._resync_spot(request.spot_id)
            raise ConflictError(
                f"Spot {request.spot_id} changed concurrently; try again",
                spot_id=request.spot_id,
            )

        self._count(RESERVATIONS_CREATED_TOTAL, {"spot_type": request.spot_type.value})
        logger.debug(
            "Created reservation %s on %s for %s (%d)",
            reservation.reservation_id,
            reservation.spot_id,
            reservation.user_id,
            reservation.final_price,
        )
        return reservation

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    async def cancel(self, reservation_id: str, requester_id: str) -> Reservation:
        """
        Cancel a live reservation and release its spot.

        Returns:
            The cancelled reservation

        Raises:
            NotFoundError: Unknown reservation
            ForbiddenError: Requester does not own the reservation
            AlreadyCancelledError: Already cancelled (including by a
                concurrent cancel that won the spot lock)
            InvalidTransitionError: Reservation already completed
            PersistenceError: The backend failed after retries
        """
        reservation = await self._load(reservation_id)
        if reservation is None:
            raise NotFoundError(reservation_id)
        if not self.identity.owns(requester_id, reservation):
            raise ForbiddenError(reservation_id, requester_id)

        spot_id = reservation.spot_id
        for _ in range(CONFLICT_RETRY_LIMIT):
            async with self.inventory.releasing(spot_id, reservation_id) as token:
                current = await self._load(reservation_id)
                if current is None:
                    raise NotFoundError(reservation_id)
                if current.status is ReservationStatus.CANCELLED:
                    raise AlreadyCancelledError(reservation_id)
                if not current.status.can_transition_to(ReservationStatus.CANCELLED):
                    raise InvalidTransitionError(
                        reservation_id,
                        current.status.value,
                        ReservationStatus.CANCELLED.value,
                    )

                now = self._clock()
                cancelled = current.with_status(ReservationStatus.CANCELLED, at=now)
                mutations: list[Mutation] = [
                    PutReservation(cancelled, expected_version=current.version),
                    self._spot_put(token),
                ]
                if await self._commit("cancel", mutations, expected=cancelled):
                    token.confirm()
                    self._publish_reservation(EventType.CANCELLED, cancelled, now)
                    self._publish_spot_change(token, now)

            if token.confirmed:
                self._count(
                    RESERVATIONS_CANCELLED_TOTAL, {"spot_type": cancelled.unit_type.value}
                )
                logger.debug("Cancelled reservation %s", reservation_id)
                return cancelled

            self._count_conflict("version")
            logger.warning(
                "Reservation %s changed concurrently during cancel, re-evaluating",
                reservation_id,
            )
            await self._resync_spot(spot_id)

        raise ConflictError(
            f"Reservation {reservation_id} kept changing; try again", spot_id=spot_id
        )

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    async def mark_paid(
        self, reservation_id: str, payment: PaymentConfirmation
    ) -> Reservation:
        """
        Record that the payment collaborator charged the reservation.

        Status and version are unchanged. Recording a second payment
        replaces the first.

        The spot lock is not taken, so a payment never waits behind a status
        transition. PAID is published with the version stored after the
        payment was written; a status change committed meanwhile carries
        the payment forward in any projection.

        Raises:
            NotFoundError: Unknown reservation
            PersistenceError: The backend failed after retries
        """
        current = await self._load(reservation_id)
        if current is None:
            raise NotFoundError(reservation_id)
        if current.payment is not None:
            logger.warning(
                "Reservation %s already paid (%s); replacing with %s",
                reservation_id,
                current.payment.reference,
                payment.reference,
            )
        if not await self._commit("mark_paid", [PutPayment(reservation_id, payment)]):
            raise NotFoundError(reservation_id)

        stored = await self._load(reservation_id)
        paid = replace(stored or current, payment=payment)
        self._publish_reservation(EventType.PAID, paid, self._clock())

        self._count(PAYMENTS_RECORDED_TOTAL)
        logger.debug("Recorded payment %s for %s", payment.reference, reservation_id)
        return paid

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, reservation_id: str) -> Reservation:
        reservation = await self._load(reservation_id)
        if reservation is None:
            raise NotFoundError(reservation_id)
        return reservation

    async def list(self, user_id: str) -> list[Reservation]:
        """A user's reservations, most recent created_at first."""
        return await self._persist(
            "list_reservations", lambda: self.backend.list_reservations(user_id=user_id)
        )

    async def user_stats(self, user_id: str) -> UserStats:
        reservations = await self.list(user_id)

        def facility_of(spot_id: str) -> str | None:
            if not self.inventory.has_spot(spot_id):
                return None
            return self.inventory.get_spot(spot_id).facility_id

        return compute_user_stats(user_id, reservations, facility_of)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def set_spot_disabled(self, spot_id: str, disabled: bool) -> ParkingSpot:
        """
        Take a spot out of service, or return it to service.

        Live reservations keep their holds while the spot is disabled.

        Returns:
            The spot with its resulting status

        Raises:
            NotFoundError: Unknown spot
            ConflictError: The spot changed concurrently
        """
        async with self.inventory.disabling(spot_id, disabled) as token:
            if not token.changed:
                return replace(token.spot, status=token.new_status)
            now = self._clock()
            if await self._commit("set_spot_disabled", [self._spot_put(token)]):
                token.confirm()
                self._publish_spot_change(token, now)

        if not token.confirmed:
            self._count_conflict("version")
            await self._resync_spot(spot_id)
            raise ConflictError(
                f"Spot {spot_id} changed concurrently; try again", spot_id=spot_id
            )

        logger.info("Spot %s %s", spot_id, "disabled" if disabled else "enabled")
        return token.next_spot

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _activate(self, hold: SpotHold, now: datetime) -> bool:
        stale = False
        async with self.inventory.activating(hold.spot_id, hold.reservation_id) as token:
            if not token.changed:
                return False
            current = await self._load(hold.reservation_id)
            if current is None or current.status is not ReservationStatus.UPCOMING:
                stale = True
            else:
                activated = current.with_status(ReservationStatus.ACTIVE, at=now)
                mutations: list[Mutation] = [
                    PutReservation(activated, expected_version=current.version),
                    self._spot_put(token),
                ]
                if await self._commit("activate", mutations, expected=activated):
                    token.confirm()
                    self._publish_reservation(EventType.ACTIVATED, activated, now)
                    self._publish_spot_change(token, now)

        if not token.confirmed:
            logger.warning(
                "Activation of %s skipped (%s), resyncing spot %s",
                hold.reservation_id,
                "stale hold" if stale else "version conflict",
                hold.spot_id,
            )
            await self._resync_spot(hold.spot_id)
            return False

        self._count(RESERVATIONS_ACTIVATED_TOTAL)
        return True

    async def _complete(self, hold: SpotHold, now: datetime) -> bool:
        stale = False
        async with self.inventory.releasing(hold.spot_id, hold.reservation_id) as token:
            if not token.changed:
                return False
            current = await self._load(hold.reservation_id)
            if current is None or not current.status.is_live:
                stale = True
            else:
                # An UPCOMING reservation whose window already elapsed passes
                # through ACTIVE so every step is a legal transition.
                steps: list[tuple[EventType, Reservation]] = []
                latest = current
                if latest.status is ReservationStatus.UPCOMING:
                    latest = latest.with_status(ReservationStatus.ACTIVE, at=now)
                    steps.append((EventType.ACTIVATED, latest))
                latest = latest.with_status(ReservationStatus.COMPLETED, at=now)
                steps.append((EventType.COMPLETED, latest))

                mutations: list[Mutation] = [
                    PutReservation(latest, expected_version=current.version),
                    self._spot_put(token),
                ]
                if await self._commit("complete", mutations, expected=latest):
                    token.confirm()
                    for event_type, snapshot in steps:
                        self._publish_reservation(event_type, snapshot, now)
                    self._publish_spot_change(token, now)

        if not token.confirmed:
            logger.warning(
                "Completion of %s skipped (%s), resyncing spot %s",
                hold.reservation_id,
                "stale hold" if stale else "version conflict",
                hold.spot_id,
            )
            await self._resync_spot(hold.spot_id)
            return False

        self._count(RESERVATIONS_COMPLETED_TOTAL)
        return True

    async def advance_lifecycle(self, now: datetime | None = None) -> SweepResult:
        """
        Apply time-derived transitions.

        UPCOMING reservations whose window has started become ACTIVE; live
        reservations whose window has ended become COMPLETED and release
        their spot. A failure on one reservation does not stop the others;
        it is retried on the next pass.
        """
        now = now if now is not None else self._clock()
        due = self.inventory.due_transitions(now)
        result = SweepResult()

        for hold in due.complete:
            try:
                if await self._complete(hold, now):
                    result.completed.append(hold.reservation_id)
            except ReservationError as e:
                logger.warning("Could not complete %s: %s", hold.reservation_id, e)
                result.failed.append(hold.reservation_id)

        for hold in due.activate:
            try:
                if await self._activate(hold, now):
                    result.activated.append(hold.reservation_id)
            except ReservationError as e:
                logger.warning("Could not activate %s: %s", hold.reservation_id, e)
                result.failed.append(hold.reservation_id)

        self._count(LIFECYCLE_SWEEPS_TOTAL)
        if result.changed or result.failed:
            logger.info(
                "Lifecycle sweep: %d activated, %d completed, %d failed",
                len(result.activated),
                len(result.completed),
                len(result.failed),
            )
        return result

    async def seed(self, spots: Sequence[ParkingSpot]) -> int:
        """Store catalog spots the backend does not know yet."""
        inserted = await self._persist(
            "seed_spots", lambda: self.backend.seed_spots(spots)
        )
        if inserted:
            logger.info("Seeded %d of %d catalog spots", inserted, len(spots))
        return inserted

    async def reconcile(self, repair: bool = True) -> int:
        """
        Recover after a restart.

        Repairs stale spot status in the backend (unless repair is False),
        then reloads the inventory from the backend's spots and live
        reservations.

        Returns:
            Number of live reservations loaded
        """
        if repair:
            live = await self._persist(
                "reconcile", lambda: self.backend.reconcile_on_startup()
            )
        else:
            live = await self._persist(
                "list_reservations",
                lambda: self.backend.list_reservations(statuses=LIVE_STATUSES),
            )
        spots = await self._persist("list_spots", lambda: self.backend.list_spots())
        self.inventory.load(spots, live)
        return len(live)

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    async def _sweep_loop(self) -> None:
        interval = self.config.lifecycle_sweep_interval
        while self._running:
            try:
                await self.advance_lifecycle()
            except Exception:
                logger.exception("Lifecycle sweep failed")
            await asyncio.sleep(interval)

    async def start(self) -> None:
        """Start the background lifecycle sweep if enabled."""
        if self._running:
            return
        self._running = True
        if self.config.enable_lifecycle_sweep:
            self._sweep_task = asyncio.create_task(
                self._sweep_loop(), name="lifecycle-sweep"
            )
        logger.info(
            "ReservationManager started (sweep every %.1fs)",
            self.config.lifecycle_sweep_interval,
        )

    async def stop(self) -> None:
        async with self._shutdown_lock:
            if not self._running:
                return
            self._running = False
            if self._sweep_task is not None:
                self._sweep_task.cancel()
                try:
                    await self._sweep_task
                except asyncio.CancelledError:
                    pass
                self._sweep_task = None
            logger.info("ReservationManager stopped")

    @property
    def is_running(self) -> bool:
        return self._running


__all__ = [
    "BACKOFF_JITTER_FACTOR",
    "CONFLICT_RETRY_LIMIT",
    "Clock",
    "ReservationManager",
    "SweepResult",
    "new_reservation_id",
    "utc_now",
]
