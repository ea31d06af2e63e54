# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions for spots, reservations, prices and events."""

from .events import EntityKind, EventType, ReservationEvent
from .price import PriceBreakdown
from .reservation import (
    PaymentConfirmation,
    Reservation,
    ReservationRequest,
    ReservationStatus,
    TimeWindow,
    VehicleInfo,
    derive_spot_status,
)
from .spot import ParkingSpot, SpotStatus, SpotType

__all__ = [
    "EntityKind",
    # Events
    "EventType",
    # Spots
    "ParkingSpot",
    "PaymentConfirmation",
    # Pricing
    "PriceBreakdown",
    # Reservations
    "Reservation",
    "ReservationEvent",
    "ReservationRequest",
    "ReservationStatus",
    "SpotStatus",
    "SpotType",
    "TimeWindow",
    "VehicleInfo",
    "derive_spot_status",
]
