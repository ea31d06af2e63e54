"""Tests for MemoryBackend."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from parking_reservations.backends.base import (
    PutPayment,
    PutReservation,
    PutSpot,
    bump_spot,
)
from parking_reservations.backends.memory import MemoryBackend
from parking_reservations.types.price import PriceBreakdown
from parking_reservations.types.reservation import (
    PaymentConfirmation,
    Reservation,
    ReservationStatus,
    TimeWindow,
)
from parking_reservations.types.spot import ParkingSpot, SpotStatus, SpotType

BASE = datetime(2030, 1, 15, 10, tzinfo=timezone.utc)


def spot(spot_id: str = "A-01", **kwargs) -> ParkingSpot:
    return ParkingSpot(spot_id, "central", spot_id, SpotType.STANDARD, **kwargs)


def reservation(
    reservation_id: str = "rsv-1",
    spot_id: str = "A-01",
    user_id: str = "user-1",
    created_offset: int = 0,
    **kwargs,
) -> Reservation:
    return Reservation(
        reservation_id=reservation_id,
        spot_id=spot_id,
        user_id=user_id,
        window=TimeWindow(BASE, BASE + timedelta(hours=2)),
        unit_type=SpotType.STANDARD,
        price=PriceBreakdown(50, 100, 2.0, 1.0, 1.0),
        created_at=BASE - timedelta(hours=3) + timedelta(minutes=created_offset),
        **kwargs,
    )


class TestMemoryBackend:
    @pytest.fixture
    async def backend(self):
        backend = MemoryBackend(namespace="test")
        await backend.seed_spots([spot("A-01"), spot("A-02")])
        return backend

    async def insert(self, backend, rsv):
        stored = await backend.load_spot(rsv.spot_id)
        ok = await backend.commit(
            [PutReservation(rsv), bump_spot(stored, SpotStatus.RESERVED)]
        )
        assert ok
        return rsv

    @pytest.mark.asyncio
    async def test_seed_keeps_existing(self, backend):
        changed = bump_spot(await backend.load_spot("A-01"), SpotStatus.DISABLED)
        assert await backend.commit([changed])

        inserted = await backend.seed_spots([spot("A-01"), spot("B-01")])

        assert inserted == 1
        stored = await backend.load_spot("A-01")
        assert stored.status is SpotStatus.DISABLED
        assert stored.version == 1
        assert len(await backend.list_spots()) == 3

    @pytest.mark.asyncio
    async def test_load_missing(self, backend):
        assert await backend.load_spot("Z-99") is None
        assert await backend.load_reservation("nope") is None

    @pytest.mark.asyncio
    async def test_insert_and_load(self, backend):
        await self.insert(backend, reservation())

        loaded = await backend.load_reservation("rsv-1")
        assert loaded == reservation()
        assert loaded is not reservation()
        assert (await backend.load_spot("A-01")).version == 1

    @pytest.mark.asyncio
    async def test_duplicate_insert_rejected(self, backend):
        await self.insert(backend, reservation())
        stored = await backend.load_spot("A-01")
        assert not await backend.commit(
            [PutReservation(reservation()), bump_spot(stored, SpotStatus.RESERVED)]
        )

    @pytest.mark.asyncio
    async def test_stale_spot_version_rejects_whole_batch(self, backend):
        stale = await backend.load_spot("A-01")
        assert await backend.commit([bump_spot(stale, SpotStatus.RESERVED)])

        ok = await backend.commit(
            [PutReservation(reservation()), bump_spot(stale, SpotStatus.RESERVED)]
        )

        assert ok is False
        assert await backend.load_reservation("rsv-1") is None
        health = await backend.health_check()
        assert health.metadata["version_conflicts"] == 1

    @pytest.mark.asyncio
    async def test_update_requires_expected_version(self, backend):
        original = await self.insert(backend, reservation())
        cancelled = original.with_status(ReservationStatus.CANCELLED)

        assert not await backend.commit([PutReservation(cancelled, expected_version=5)])
        assert await backend.commit(
            [PutReservation(cancelled, expected_version=original.version)]
        )
        loaded = await backend.load_reservation("rsv-1")
        assert loaded.status is ReservationStatus.CANCELLED
        assert loaded.version == 2

    @pytest.mark.asyncio
    async def test_update_of_missing_rejected(self, backend):
        assert not await backend.commit(
            [PutReservation(reservation(), expected_version=1)]
        )

    @pytest.mark.asyncio
    async def test_payment_merge(self, backend):
        await self.insert(backend, reservation())
        payment = PaymentConfirmation("pay-1", method="card", amount=100, paid_at=BASE)

        assert await backend.commit([PutPayment("rsv-1", payment)])

        loaded = await backend.load_reservation("rsv-1")
        assert loaded.payment == payment
        assert loaded.version == 1

    @pytest.mark.asyncio
    async def test_payment_for_unknown_reservation(self, backend):
        assert not await backend.commit(
            [PutPayment("ghost", PaymentConfirmation("pay-1", paid_at=BASE))]
        )

    @pytest.mark.asyncio
    async def test_put_spot_requires_version(self, backend):
        current = await backend.load_spot("A-01")
        assert not await backend.commit(
            [PutSpot(spot("A-01", version=3), expected_version=2)]
        )
        assert await backend.commit([bump_spot(current, SpotStatus.DISABLED)])

    @pytest.mark.asyncio
    async def test_list_filters_and_order(self, backend):
        await self.insert(backend, reservation("rsv-1", created_offset=0))
        await self.insert(backend, reservation("rsv-2", created_offset=5))
        await self.insert(
            backend, reservation("rsv-3", spot_id="A-02", user_id="user-2")
        )
        first = await backend.load_reservation("rsv-1")
        assert await backend.commit(
            [
                PutReservation(
                    first.with_status(ReservationStatus.CANCELLED),
                    expected_version=first.version,
                )
            ]
        )

        mine = await backend.list_reservations(user_id="user-1")
        assert [r.reservation_id for r in mine] == ["rsv-2", "rsv-1"]

        on_spot = await backend.list_reservations(spot_id="A-02")
        assert [r.reservation_id for r in on_spot] == ["rsv-3"]

        live = await backend.list_reservations(
            user_id="user-1", statuses=[ReservationStatus.UPCOMING]
        )
        assert [r.reservation_id for r in live] == ["rsv-2"]

        assert await backend.list_reservations(user_id="nobody") == []

    @pytest.mark.asyncio
    async def test_concurrent_inserts_one_winner(self, backend):
        start = await backend.load_spot("A-01")

        async def attempt(rid):
            return await backend.commit(
                [PutReservation(reservation(rid)), bump_spot(start, SpotStatus.RESERVED)]
            )

        results = await asyncio.gather(*(attempt(f"rsv-{i}") for i in range(10)))

        assert results.count(True) == 1
        assert len(await backend.list_reservations(spot_id="A-01")) == 1

    @pytest.mark.asyncio
    async def test_clear(self, backend):
        await self.insert(backend, reservation())
        await backend.clear()

        assert await backend.list_spots() == []
        assert await backend.list_reservations() == []
        health = await backend.health_check()
        assert health.metadata["commits"] == 0

    @pytest.mark.asyncio
    async def test_health_check(self, backend):
        await self.insert(backend, reservation())
        health = await backend.health_check()

        assert health.healthy
        assert health.backend_type == "memory"
        assert health.namespace == "test"
        assert health.metadata["spots_count"] == 2
        assert health.metadata["reservations_count"] == 1
        assert health.metadata["commits"] == 1
