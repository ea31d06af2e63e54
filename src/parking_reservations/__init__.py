# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Parking Reservations - Reservation lifecycle and pricing engine.

This library reserves discrete parking spots for bounded time windows,
prices them deterministically, and keeps spot availability consistent
under concurrent requests.

Key Features:
    - Deterministic pricing with peak/off-peak and duration discounts
    - Atomic per-spot check-and-hold; no double booking
    - Durable commits with optimistic version checks (memory, Redis)
    - Lifecycle sweep: upcoming -> active -> completed
    - In-process change feed with replay and drop-and-resync overflow
    - Restart recovery of stale spot holds

Quick Start:
    >>> from parking_reservations import create_reservation_service
    >>> from parking_reservations.types import ParkingSpot, SpotType
    >>>
    >>> spots = [ParkingSpot("A-01", "central", "A-01", SpotType.STANDARD)]
    >>> service = create_reservation_service(spots=spots)
    >>> async with service:
    ...     reservation = await service.create_reservation(
    ...         "A-01", "user-1", SpotType.STANDARD, start, end
    ...     )

Main Exports:
    - ReservationService, create_reservation_service: Public facade
    - ReservationManager, SpotInventory, ChangeNotifier: Core components
    - MemoryBackend, RedisBackend: Persistence backends
    - PricingPolicy, quote: Pricing
    - ReservationConfig: Configuration options

Note: RedisBackend requires the 'redis' extra. Install with:
    pip install parking-reservations[redis]

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING

from .backends import (
    BaseBackend,
    HealthCheckResult,
    MemoryBackend,
)
from .config import ReservationConfig
from .exceptions import (
    AlreadyCancelledError,
    BackendConnectionError,
    BackendError,
    BackendOperationError,
    ConfigurationError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    InvalidWindowError,
    NotFoundError,
    PersistenceError,
    ReservationError,
    SpotDisabledError,
)
from .inventory import Occupancy, SpotInventory
from .manager import ReservationManager, SweepResult, UserStats
from .notifications import ChangeNotifier, EventFilter, EventProjection, Subscription
from .pricing import (
    DEFAULT_PRICING_POLICY,
    PricingCalculator,
    PricingPolicy,
    describe_breakdown,
    quote,
)
from .protocols import CatalogProtocol, IdentityProtocol, OwnerIdentity, StaticCatalog
from .service import ReservationService, create_reservation_service
from .types import (
    EventType,
    ParkingSpot,
    PaymentConfirmation,
    PriceBreakdown,
    Reservation,
    ReservationEvent,
    ReservationStatus,
    SpotStatus,
    SpotType,
    TimeWindow,
    VehicleInfo,
)

# Lazy import for optional redis backend
if TYPE_CHECKING:
    from .backends import RedisBackend

__all__ = [
    "DEFAULT_PRICING_POLICY",
    "AlreadyCancelledError",
    "BackendConnectionError",
    "BackendError",
    "BackendOperationError",
    # Backends
    "BaseBackend",
    # Protocols
    "CatalogProtocol",
    # Components
    "ChangeNotifier",
    "ConfigurationError",
    "ConflictError",
    "EventFilter",
    "EventProjection",
    # Types
    "EventType",
    "ForbiddenError",
    "HealthCheckResult",
    "IdentityProtocol",
    "InvalidTransitionError",
    "InvalidWindowError",
    "MemoryBackend",
    "NotFoundError",
    "Occupancy",
    "OwnerIdentity",
    "ParkingSpot",
    "PaymentConfirmation",
    "PersistenceError",
    "PriceBreakdown",
    # Pricing
    "PricingCalculator",
    "PricingPolicy",
    "RedisBackend",  # Lazy loaded - requires redis extra
    "Reservation",
    "ReservationConfig",
    # Exceptions
    "ReservationError",
    "ReservationEvent",
    "ReservationManager",
    # Service
    "ReservationService",
    "ReservationStatus",
    "SpotDisabledError",
    "SpotInventory",
    "SpotStatus",
    "SpotType",
    "StaticCatalog",
    "Subscription",
    "SweepResult",
    "TimeWindow",
    "UserStats",
    "VehicleInfo",
    "create_reservation_service",
    "describe_breakdown",
    "quote",
]


def __getattr__(name: str) -> type:
    """Lazy import for optional redis backend."""
    if name == "RedisBackend":
        from .backends import RedisBackend

        return RedisBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
