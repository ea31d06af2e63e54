# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Human-readable price breakdowns for display by the presentation layer."""

from decimal import Decimal

from ..types.price import PriceBreakdown
from .calculator import round_half_away_from_zero
from .policy import DEFAULT_PRICING_POLICY, PricingPolicy


def format_price(amount: float, symbol: str = DEFAULT_PRICING_POLICY.currency_symbol) -> str:
    """Format an amount as whole currency units, e.g. ``₹150``."""
    return f"{symbol}{round_half_away_from_zero(Decimal(str(amount)))}"


def format_duration(hours: float) -> str:
    """Format fractional hours as ``"2h 30m"``."""
    whole_hours = int(hours)
    minutes = round_half_away_from_zero(Decimal(str((hours - whole_hours) * 60)))
    if minutes == 60:
        whole_hours += 1
        minutes = 0
    return f"{whole_hours}h {minutes}m"


def rate_label(breakdown: PriceBreakdown, policy: PricingPolicy = DEFAULT_PRICING_POLICY) -> str:
    """Describe the time-of-day multiplier applied to a quote."""
    if breakdown.multiplier == 1.0:
        return "Standard Rate"
    percent = round_half_away_from_zero(
        Decimal(str(abs(breakdown.multiplier - 1.0) * 100))
    )
    if breakdown.multiplier == policy.peak_multiplier:
        return f"Peak Hours (+{percent}%)"
    if breakdown.multiplier == policy.off_peak_multiplier:
        return f"Off-Peak (-{percent}%)"
    sign = "+" if breakdown.multiplier > 1.0 else "-"
    return f"Adjusted Rate ({sign}{percent}%)"


def discount_label(breakdown: PriceBreakdown) -> str:
    percent = breakdown.discount_percent
    if percent <= 0:
        return "No Discount"
    return f"{round_half_away_from_zero(Decimal(str(percent)))}% Off"


def describe_breakdown(
    breakdown: PriceBreakdown,
    policy: PricingPolicy = DEFAULT_PRICING_POLICY,
) -> dict[str, str]:
    """
    Render a breakdown as display strings.

    Returns:
        Dict with base_rate, duration, subtotal, time_multiplier, discount
        and final_price entries.
    """
    symbol = policy.currency_symbol
    return {
        "base_rate": format_price(breakdown.base_price, symbol),
        "duration": format_duration(breakdown.duration_hours),
        "subtotal": format_price(breakdown.subtotal, symbol),
        "time_multiplier": rate_label(breakdown, policy),
        "discount": discount_label(breakdown),
        "final_price": format_price(breakdown.final_price, symbol),
    }


__all__ = [
    "describe_breakdown",
    "discount_label",
    "format_duration",
    "format_price",
    "rate_label",
]
