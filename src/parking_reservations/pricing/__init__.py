# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Pricing engine: policy configuration, quoting and display formatting.

Exports:
    PricingPolicy: Immutable tariff configuration
    PricingCalculator: Policy-bound quoting service
    quote: Pure pricing function
"""

from .calculator import (
    PricingCalculator,
    discount_factor,
    quote,
    quote_window,
    round_half_away_from_zero,
    time_multiplier,
)
from .formatting import describe_breakdown, format_duration, format_price
from .policy import DEFAULT_PRICING_POLICY, DurationTier, PeakRange, PricingPolicy

__all__ = [
    "DEFAULT_PRICING_POLICY",
    "DurationTier",
    "PeakRange",
    "PricingCalculator",
    "PricingPolicy",
    "describe_breakdown",
    "discount_factor",
    "format_duration",
    "format_price",
    "quote",
    "quote_window",
    "round_half_away_from_zero",
    "time_multiplier",
]
