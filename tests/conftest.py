"""
Shared fixtures for unit and integration tests.

Times are fixed: the fake clock starts at 2030-01-15 08:00 UTC, so windows
later that day are in the future and hour-of-day pricing is predictable.
"""

from datetime import datetime, timedelta, timezone

import pytest

from parking_reservations.backends.memory import MemoryBackend
from parking_reservations.config import ReservationConfig
from parking_reservations.observability.collector import UnifiedMetricsCollector
from parking_reservations.protocols.catalog import StaticCatalog
from parking_reservations.service import ReservationService
from parking_reservations.types.spot import ParkingSpot, SpotType

BASE_DAY = datetime(2030, 1, 15, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day_offset: int = 0) -> datetime:
    """An aware datetime on the test day."""
    return BASE_DAY + timedelta(days=day_offset, hours=hour, minutes=minute)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, instant: datetime) -> None:
        self.current = instant


def make_spots() -> list[ParkingSpot]:
    return [
        ParkingSpot("A-01", "central", "A-01", SpotType.STANDARD),
        ParkingSpot("A-02", "central", "A-02", SpotType.STANDARD),
        ParkingSpot("C-01", "central", "C-01", SpotType.COMPACT),
        ParkingSpot("E-01", "central", "E-01", SpotType.ELECTRIC),
        ParkingSpot("N-01", "north", "N-01", SpotType.STANDARD),
    ]


@pytest.fixture(name="at")
def at_fixture():
    """The at() helper, for tests that build windows on the test day."""
    return at


@pytest.fixture
def clock():
    return FakeClock(at(8))


@pytest.fixture
def spots():
    return make_spots()


@pytest.fixture
def collector():
    return UnifiedMetricsCollector(enable_prometheus=False)


@pytest.fixture
def config():
    return ReservationConfig(
        persistence_timeout=1.0,
        persistence_retry_backoff=0.001,
        enable_lifecycle_sweep=False,
        metrics_enabled=False,
    )


@pytest.fixture
def memory_backend():
    return MemoryBackend(namespace="test")


@pytest.fixture
async def service(memory_backend, spots, config, collector, clock):
    svc = ReservationService(
        backend=memory_backend,
        catalog=StaticCatalog(spots),
        config=config,
        metrics_collector=collector,
        clock=clock,
    )
    await svc.start()
    yield svc
    await svc.stop()
