# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Persistence backends for spots, reservations and payments.

Available backends:
- BaseBackend: Abstract base class defining the backend interface
- MemoryBackend: In-memory backend for single-instance deployments
- RedisBackend: Redis-based backend for multi-instance deployments (requires redis extra)

Supporting types:
- HealthCheckResult: Structured result from backend health checks
- PutSpot, PutReservation, PutPayment: Mutations applied by commit()

Note: RedisBackend is lazily imported to avoid requiring the redis package
when only using MemoryBackend.
"""

from typing import TYPE_CHECKING, cast

from parking_reservations.backends.base import (
    BaseBackend,
    HealthCheckResult,
    Mutation,
    PutPayment,
    PutReservation,
    PutSpot,
    bump_spot,
)
from parking_reservations.backends.memory import MemoryBackend

if TYPE_CHECKING:
    from parking_reservations.backends.redis import RedisBackend

__all__ = [
    "BaseBackend",
    "HealthCheckResult",
    "MemoryBackend",
    "Mutation",
    "PutPayment",
    "PutReservation",
    "PutSpot",
    # Redis backend (lazy loaded)
    "RedisBackend",
    "bump_spot",
]


def __getattr__(name: str) -> type:
    """Lazy import for the optional redis backend."""
    if name == "RedisBackend":
        try:
            from parking_reservations.backends import redis as redis_module

            return cast(type, redis_module.RedisBackend)
        except ImportError as e:  # pragma: no cover
            raise ImportError(  # pragma: no cover
                f"'{name}' requires the 'redis' extra. "
                "Install with: pip install parking-reservations[redis]"
            ) from e
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
