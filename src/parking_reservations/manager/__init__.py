# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Reservation lifecycle orchestration."""

from .reservation_manager import (
    Clock,
    ReservationManager,
    SweepResult,
    new_reservation_id,
    utc_now,
)
from .stats import UserStats, compute_user_stats

__all__ = [
    "Clock",
    "ReservationManager",
    "SweepResult",
    "UserStats",
    "compute_user_stats",
    "new_reservation_id",
    "utc_now",
]
