import asyncio

import pytest

from parking_reservations import (
    ConfigurationError,
    ConflictError,
    EventFilter,
    EventProjection,
    MemoryBackend,
    PaymentConfirmation,
    ReservationConfig,
    ReservationService,
    SpotStatus,
    SpotType,
    StaticCatalog,
    create_reservation_service,
)
from parking_reservations.observability.collector import reset_metrics_collector
from parking_reservations.types.events import EventType


class TestServiceLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager(self, spots, config, collector):
        service = create_reservation_service(
            spots=spots, config=config, metrics_collector=collector
        )
        async with service as running:
            assert running is service
            assert service.is_running
            assert len(await service.list_spots()) == 5
        assert not service.is_running

    @pytest.mark.asyncio
    async def test_auto_start_on_first_use(self, spots, config, collector):
        service = create_reservation_service(
            spots=spots, config=config, metrics_collector=collector
        )
        assert await service.spot_status("A-01") is SpotStatus.AVAILABLE
        assert service.is_running
        await service.stop()
        await service.stop()

    @pytest.mark.asyncio
    async def test_restart_recovers_from_shared_backend(
        self, memory_backend, spots, config, collector, clock, at
    ):
        def build():
            return ReservationService(
                backend=memory_backend,
                catalog=StaticCatalog(spots),
                config=config,
                metrics_collector=collector,
                clock=clock,
            )

        async with build() as first:
            await first.create_reservation("A-01", "user-1", "standard", at(11), at(13))

        async with build() as second:
            assert await second.spot_status("A-01") is SpotStatus.RESERVED
            with pytest.raises(ConflictError):
                await second.create_reservation(
                    "A-01", "user-2", "standard", at(12), at(14)
                )

        assert len(await memory_backend.list_reservations()) == 1

    def test_catalog_and_spots_are_exclusive(self, spots):
        with pytest.raises(ConfigurationError):
            create_reservation_service(catalog=StaticCatalog(spots), spots=spots)

    def test_metrics_disabled(self, config):
        service = ReservationService(config=config)
        assert service.metrics_collector is None
        assert isinstance(service.backend, MemoryBackend)

    def test_shared_collector_when_enabled(self):
        service = ReservationService(
            config=ReservationConfig(prometheus_enabled=False)
        )
        assert service.metrics_collector is not None
        assert service.manager.metrics_collector is service.metrics_collector
        reset_metrics_collector()

    def test_quote_price_is_pure(self, spots, at):
        service = create_reservation_service(spots=spots)

        breakdown = service.quote_price("standard", at(11), at(13, 30))

        assert breakdown.final_price == 125
        assert not service.is_running


class TestServiceOperations:
    @pytest.mark.asyncio
    async def test_reservation_round_trip(self, service, at):
        created = await service.create_reservation(
            "E-01", "user-1", SpotType.ELECTRIC, at(11), at(13)
        )

        assert created.final_price == 120
        assert await service.get_reservation(created.reservation_id) == created
        assert await service.list_reservations("user-1") == [created]
        assert await service.list_reservations("user-2") == []

        await service.cancel_reservation(created.reservation_id, "user-1")
        assert await service.spot_status("E-01") is SpotStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, service, clock, at):
        older = await service.create_reservation("A-01", "user-1", "standard", at(11), at(12))
        clock.advance(minutes=5)
        newer = await service.create_reservation("A-02", "user-1", "standard", at(11), at(12))

        listed = await service.list_reservations("user-1")

        assert [r.reservation_id for r in listed] == [
            newer.reservation_id,
            older.reservation_id,
        ]

    @pytest.mark.asyncio
    async def test_mark_paid(self, service, at):
        created = await service.create_reservation(
            "A-01", "user-1", "standard", at(11), at(13)
        )
        paid = await service.mark_paid(
            created.reservation_id, PaymentConfirmation("pay-1", method="card")
        )

        assert paid.is_paid
        assert (await service.get_reservation(created.reservation_id)).is_paid

    @pytest.mark.asyncio
    async def test_find_available_after_conflict(self, service, at):
        await service.create_reservation("A-01", "user-1", "standard", at(11), at(13))

        with pytest.raises(ConflictError):
            await service.create_reservation("A-01", "user-2", "standard", at(12), at(14))
        alternatives = await service.find_available_spots("standard", at(12), at(14))

        assert [s.spot_id for s in alternatives] == ["A-02", "N-01"]
        central = await service.find_available_spots(
            SpotType.STANDARD, at(12), at(14), facility_id="central"
        )
        assert [s.spot_id for s in central] == ["A-02"]

    @pytest.mark.asyncio
    async def test_disable_and_enable(self, service, at):
        spot = await service.disable_spot("N-01")
        assert spot.status is SpotStatus.DISABLED
        assert await service.find_available_spots("standard", at(11), at(12), "north") == []

        spot = await service.enable_spot("N-01")
        assert spot.status is SpotStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_occupancy(self, service, at, clock):
        await service.create_reservation("A-01", "user-1", "standard", at(11), at(13))
        await service.create_reservation("C-01", "user-1", "compact", at(9), at(10))
        clock.set(at(9, 30))
        await service.advance_lifecycle()

        occupancy = await service.occupancy("central")

        assert occupancy.total == 4
        assert occupancy.by_status[SpotStatus.RESERVED] == 1
        assert occupancy.by_status[SpotStatus.OCCUPIED] == 1
        assert occupancy.rate == 0.5

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self, service, at):
        projection = EventProjection()
        received = []
        unsubscribe = service.subscribe(projection.apply)
        service.subscribe(
            received.append,
            EventFilter(event_types=frozenset({EventType.CANCELLED})),
        )

        created = await service.create_reservation(
            "A-01", "user-1", "standard", at(11), at(13)
        )
        await service.notifier.flush()
        unsubscribe()
        await service.cancel_reservation(created.reservation_id, "user-1")
        await service.notifier.flush()

        assert projection.reservation(created.reservation_id) == created
        assert projection.spot("A-01").status is SpotStatus.RESERVED
        assert [e.event_type for e in received] == [EventType.CANCELLED]

    @pytest.mark.asyncio
    async def test_subscriber_sees_each_version_once_in_order(self, service, at):
        seen = []
        service.subscribe(lambda e: seen.append((e.entity_id, e.version)))

        await asyncio.gather(
            *(
                service.create_reservation(
                    spot_id, "user-1", "standard", at(11), at(13)
                )
                for spot_id in ("A-01", "A-02", "N-01")
            )
        )
        await service.notifier.flush()

        reservation_versions = [v for entity, v in seen if entity.startswith("rsv_")]
        assert reservation_versions == [1, 1, 1]
        assert len(seen) == len(set(seen))

    @pytest.mark.asyncio
    async def test_health_check(self, service):
        health = await service.health_check()
        assert health.healthy
        assert health.backend_type == "memory"
