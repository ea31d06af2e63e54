"""
Shared fixtures for benchmark tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from parking_reservations.backends.memory import MemoryBackend
from parking_reservations.config import ReservationConfig
from parking_reservations.protocols.catalog import StaticCatalog
from parking_reservations.service import ReservationService
from parking_reservations.types.spot import ParkingSpot, SpotType

BENCH_DAY = datetime(2030, 6, 1, tzinfo=timezone.utc)
SPOT_COUNT = 200


def _bench_time(hour: int, minute: int = 0, day_offset: int = 0) -> datetime:
    return BENCH_DAY + timedelta(days=day_offset, hours=hour, minutes=minute)


@pytest.fixture
def bench_time():
    """Aware datetimes on the benchmark day."""
    return _bench_time


@pytest.fixture
def benchmark_spots():
    """Two facilities of mixed spot types."""
    types = list(SpotType)
    return [
        ParkingSpot(
            f"B-{i:03d}",
            "central" if i % 2 else "north",
            f"B-{i:03d}",
            types[i % len(types)],
        )
        for i in range(SPOT_COUNT)
    ]


@pytest.fixture
def benchmark_config():
    """Configuration optimized for benchmarking."""
    return ReservationConfig(
        enable_lifecycle_sweep=False,
        metrics_enabled=False,
        event_replay_buffer=10000,
        subscriber_queue_size=10000,
    )


@pytest.fixture
async def benchmark_service(benchmark_spots, benchmark_config):
    """A started service whose clock is pinned to the benchmark morning."""
    service = ReservationService(
        backend=MemoryBackend(namespace="bench"),
        catalog=StaticCatalog(benchmark_spots),
        config=benchmark_config,
        clock=lambda: _bench_time(6),
    )
    await service.start()
    yield service
    await service.stop()
