# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
ReservationService: the public entry point of the reservation core.

The service wires a backend, the spot inventory, the pricing calculator, the
change notifier and the reservation manager together, and exposes the
operations callers need. It is an explicit instance; nothing is global
except the optional shared metrics collector.

Example:
    service = create_reservation_service(spots=catalog_spots)
    async with service:
        quote = service.quote_price(SpotType.STANDARD, start, end)
        reservation = await service.create_reservation(
            "A-01", "user-1", SpotType.STANDARD, start, end
        )
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from typing_extensions import Self

from .backends.base import BaseBackend, HealthCheckResult
from .backends.memory import MemoryBackend
from .config import ReservationConfig
from .exceptions import ConfigurationError
from .inventory.spot_inventory import Occupancy, SpotInventory
from .manager.reservation_manager import Clock, ReservationManager, SweepResult
from .manager.stats import UserStats
from .notifications.notifier import ChangeNotifier, EventFilter, EventHandler
from .observability.collector import UnifiedMetricsCollector, get_metrics_collector
from .observability.protocols import MetricsCollectorProtocol
from .pricing.calculator import PricingCalculator
from .pricing.policy import DEFAULT_PRICING_POLICY, PricingPolicy
from .protocols.catalog import CatalogProtocol, StaticCatalog
from .protocols.identity import IdentityProtocol
from .types.price import PriceBreakdown
from .types.reservation import (
    PaymentConfirmation,
    Reservation,
    ReservationRequest,
    TimeWindow,
    VehicleInfo,
)
from .types.spot import ParkingSpot, SpotStatus, SpotType

logger = logging.getLogger(__name__)


class ReservationService:
    """
    Facade over the reservation core.

    Use as an async context manager, or call start()/stop() explicitly.
    Operations that need the inventory start the service on first use.
    """

    def __init__(
        self,
        backend: BaseBackend | None = None,
        catalog: CatalogProtocol | None = None,
        policy: PricingPolicy | None = None,
        config: ReservationConfig | None = None,
        identity: IdentityProtocol | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.config = config or ReservationConfig()
        self._owns_backend = backend is None
        self.backend = backend if backend is not None else MemoryBackend()
        self.catalog = catalog

        if metrics_collector is not None:
            self.metrics_collector: MetricsCollectorProtocol | None = metrics_collector
        else:
            self.metrics_collector = self._create_metrics_collector()

        self.calculator = PricingCalculator(
            policy or DEFAULT_PRICING_POLICY, metrics_collector=self.metrics_collector
        )
        self.inventory = SpotInventory(metrics_collector=self.metrics_collector)
        self.notifier = ChangeNotifier(
            queue_size=self.config.subscriber_queue_size,
            replay_buffer=self.config.event_replay_buffer,
            metrics_collector=self.metrics_collector,
        )
        self.manager = ReservationManager(
            backend=self.backend,
            inventory=self.inventory,
            notifier=self.notifier,
            calculator=self.calculator,
            identity=identity,
            config=self.config,
            metrics_collector=self.metrics_collector,
            clock=clock,
            id_factory=id_factory,
        )

        self._started = False
        self._start_lock = asyncio.Lock()

    def _create_metrics_collector(self) -> UnifiedMetricsCollector | None:
        """
        Create metrics collector based on configuration.

        Returns the shared UnifiedMetricsCollector when metrics are enabled
        and optionally starts the Prometheus HTTP server.
        """
        if not self.config.metrics_enabled:
            return None

        collector = get_metrics_collector(enable_prometheus=self.config.prometheus_enabled)

        if (
            self.config.prometheus_enabled
            and self.config.start_prometheus_server
            and not collector.server_running
        ):
            collector.start_http_server(
                self.config.prometheus_host, self.config.prometheus_port
            )

        return collector

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Seed catalog spots, recover live reservations and start the sweep."""
        async with self._start_lock:
            if self._started:
                return

            if self.catalog is not None:
                spots = await self.catalog.load_spots()
                await self.manager.seed(spots)

            live = await self.manager.reconcile(repair=self.config.reconcile_on_start)
            await self.manager.start()
            self._started = True
            logger.info(
                "ReservationService started: %d spots, %d live reservations",
                len(self.inventory.list_spots()),
                live,
            )

    async def stop(self) -> None:
        async with self._start_lock:
            if not self._started:
                return
            self._started = False
            await self.manager.stop()
            await self.notifier.close()
            if self._owns_backend:
                await self.backend.close()
            logger.info("ReservationService stopped")

    async def _ensure_started(self) -> None:
        if not self._started:
            await self.start()

    @property
    def is_running(self) -> bool:
        return self._started

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def quote_price(
        self, spot_type: SpotType | str, start: datetime, end: datetime
    ) -> PriceBreakdown:
        """
        Price a window. Pure: nothing is reserved.

        Raises:
            InvalidWindowError: If end equals start once the day-wrap is resolved
        """
        return self.manager.quote(SpotType(spot_type), start, end)

    async def create_reservation(
        self,
        spot_id: str,
        user_id: str,
        spot_type: SpotType | str,
        start: datetime,
        end: datetime,
        vehicle_info: VehicleInfo | None = None,
    ) -> Reservation:
        """
        Reserve `spot_id` for `user_id` between start and end.

        An end earlier than start means the window crosses midnight.

        Raises:
            InvalidWindowError, NotFoundError, ConflictError, PersistenceError
        """
        await self._ensure_started()
        request = ReservationRequest(
            spot_id=spot_id,
            user_id=user_id,
            spot_type=SpotType(spot_type),
            start=start,
            end=end,
            vehicle=vehicle_info,
        )
        return await self.manager.create(request)

    async def cancel_reservation(self, reservation_id: str, user_id: str) -> None:
        """
        Cancel a reservation on behalf of `user_id`.

        Raises:
            NotFoundError, ForbiddenError, AlreadyCancelledError,
            InvalidTransitionError, PersistenceError
        """
        await self._ensure_started()
        await self.manager.cancel(reservation_id, user_id)

    async def get_reservation(self, reservation_id: str) -> Reservation:
        await self._ensure_started()
        return await self.manager.get(reservation_id)

    async def list_reservations(self, user_id: str) -> list[Reservation]:
        """A user's reservations, most recent first."""
        await self._ensure_started()
        return await self.manager.list(user_id)

    async def mark_paid(
        self, reservation_id: str, payment: PaymentConfirmation
    ) -> Reservation:
        """Entry point for the payment collaborator once a charge succeeded."""
        await self._ensure_started()
        return await self.manager.mark_paid(reservation_id, payment)

    async def user_stats(self, user_id: str) -> UserStats:
        await self._ensure_started()
        return await self.manager.user_stats(user_id)

    async def advance_lifecycle(self, now: datetime | None = None) -> SweepResult:
        """Run one lifecycle pass now instead of waiting for the sweep."""
        await self._ensure_started()
        return await self.manager.advance_lifecycle(now)

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    def subscribe(
        self,
        on_event: EventHandler,
        event_filter: EventFilter | None = None,
        replay_after: int | None = None,
    ) -> Callable[[], None]:
        """
        Receive committed changes. Must be called from a running event loop.

        Returns:
            A callable that stops delivery when invoked
        """
        subscription = self.notifier.subscribe(
            on_event, event_filter=event_filter, replay_after=replay_after
        )
        return subscription.unsubscribe

    # ------------------------------------------------------------------
    # Spots
    # ------------------------------------------------------------------

    async def disable_spot(self, spot_id: str) -> ParkingSpot:
        """Take a spot out of service. Existing reservations are kept."""
        await self._ensure_started()
        return await self.manager.set_spot_disabled(spot_id, True)

    async def enable_spot(self, spot_id: str) -> ParkingSpot:
        await self._ensure_started()
        return await self.manager.set_spot_disabled(spot_id, False)

    async def spot_status(self, spot_id: str) -> SpotStatus:
        await self._ensure_started()
        return self.inventory.status(spot_id)

    async def list_spots(self, facility_id: str | None = None) -> list[ParkingSpot]:
        await self._ensure_started()
        return self.inventory.list_spots(facility_id)

    async def occupancy(self, facility_id: str | None = None) -> Occupancy:
        await self._ensure_started()
        return self.inventory.occupancy(facility_id)

    async def find_available_spots(
        self,
        spot_type: SpotType | str,
        start: datetime,
        end: datetime,
        facility_id: str | None = None,
    ) -> list[ParkingSpot]:
        """Spots of a type free for the whole window, e.g. after a conflict."""
        await self._ensure_started()
        window = TimeWindow.resolve(start, end)
        return self.inventory.find_available(SpotType(spot_type), window, facility_id)

    async def health_check(self) -> HealthCheckResult:
        return await self.backend.health_check()


def create_reservation_service(
    backend: BaseBackend | None = None,
    catalog: CatalogProtocol | None = None,
    spots: Iterable[ParkingSpot] | None = None,
    policy: PricingPolicy | None = None,
    config: ReservationConfig | None = None,
    identity: IdentityProtocol | None = None,
    **kwargs: Any,
) -> ReservationService:
    """
    Factory function to create a ReservationService.

    Args:
        backend: Persistence backend (defaults to a fresh MemoryBackend)
        catalog: Source of spot definitions
        spots: Fixed spot list, shorthand for catalog=StaticCatalog(spots)
        policy: Pricing policy (defaults to DEFAULT_PRICING_POLICY)
        config: Service configuration
        identity: Ownership policy (defaults to OwnerIdentity)
        **kwargs: Additional arguments passed to ReservationService

    Returns:
        Configured ReservationService instance

    Raises:
        ConfigurationError: If both catalog and spots are given
    """
    if catalog is not None and spots is not None:
        raise ConfigurationError("Pass either catalog or spots, not both")
    if spots is not None:
        catalog = StaticCatalog(spots)

    return ReservationService(
        backend=backend,
        catalog=catalog,
        policy=policy,
        config=config,
        identity=identity,
        **kwargs,
    )


__all__ = ["ReservationService", "create_reservation_service"]
