# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Spot availability tracking and transactional holds."""

from .hold import DueTransitions, ReservationToken, SpotHold
from .spot_inventory import Occupancy, SpotInventory

__all__ = [
    "DueTransitions",
    "Occupancy",
    "ReservationToken",
    "SpotHold",
    "SpotInventory",
]
