# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Pricing calculator for parking reservations.

quote() is a pure function of (spot type, window, policy): it has no side
effects and always returns the same breakdown for the same inputs. Arithmetic
is done with Decimal so rounding is exact and reproducible across platforms.
"""

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..observability.protocols import MetricsCollectorProtocol
from ..observability.constants import PRICE_QUOTES_TOTAL, QUOTED_PRICE
from ..types.price import PriceBreakdown
from ..types.reservation import ONE_HOUR, TimeWindow
from ..types.spot import SpotType
from .policy import DEFAULT_PRICING_POLICY, PricingPolicy

logger = logging.getLogger(__name__)

_ONE = Decimal(1)
_ONE_MICROSECOND = timedelta(microseconds=1)
_MICROSECONDS_PER_HOUR = Decimal(ONE_HOUR // _ONE_MICROSECOND)


def round_half_away_from_zero(value: Decimal) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def time_multiplier(start_hour: int, policy: PricingPolicy) -> float:
    """
    Multiplier for a window starting at `start_hour`.

    Peak ranges take precedence over the off-peak cutoffs.
    """
    if policy.is_peak_hour(start_hour):
        return policy.peak_multiplier
    if policy.is_off_peak_hour(start_hour):
        return policy.off_peak_multiplier
    return 1.0


def discount_factor(duration_hours: float, policy: PricingPolicy) -> float:
    """
    Duration discount for a window of `duration_hours`.

    A duration equal to a threshold gets no discount from that tier: only
    strictly longer bookings qualify.
    """
    # Tiers are sorted by descending threshold.
    for tier in policy.duration_tiers:
        if duration_hours > tier.threshold_hours:
            return tier.multiplier
    return 1.0


def quote_window(
    spot_type: SpotType,
    window: TimeWindow,
    policy: PricingPolicy = DEFAULT_PRICING_POLICY,
) -> PriceBreakdown:
    """Price an already-resolved window."""
    base_price = policy.base_rate(spot_type)
    hours = Decimal(window.duration // _ONE_MICROSECOND) / _MICROSECONDS_PER_HOUR
    duration_hours = float(hours)

    multiplier = time_multiplier(window.start.hour, policy)
    discount = discount_factor(duration_hours, policy)

    raw = (
        Decimal(base_price)
        * hours
        * Decimal(str(multiplier))
        * Decimal(str(discount))
    )

    return PriceBreakdown(
        base_price=base_price,
        final_price=round_half_away_from_zero(raw),
        duration_hours=duration_hours,
        multiplier=multiplier,
        discount_factor=discount,
    )


def quote(
    spot_type: SpotType,
    start: datetime,
    end: datetime,
    policy: PricingPolicy = DEFAULT_PRICING_POLICY,
) -> PriceBreakdown:
    """
    Price a parking window.

    If end is before start the window is treated as crossing midnight.

    Args:
        spot_type: Spot type, selects the hourly base rate
        start: Window start; its hour selects the time multiplier
        end: Window end
        policy: Pricing policy

    Returns:
        The price breakdown

    Raises:
        InvalidWindowError: If end <= start once the day-wrap is resolved
    """
    return quote_window(spot_type, TimeWindow.resolve(start, end), policy)


class PricingCalculator:
    """
    Stateless pricing service bound to one policy.

    Wraps quote() and records quote metrics when a collector is supplied.
    """

    def __init__(
        self,
        policy: PricingPolicy = DEFAULT_PRICING_POLICY,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        self.policy = policy
        self._metrics = metrics_collector

    def quote(self, spot_type: SpotType, start: datetime, end: datetime) -> PriceBreakdown:
        return self.quote_window(spot_type, TimeWindow.resolve(start, end))

    def quote_window(self, spot_type: SpotType, window: TimeWindow) -> PriceBreakdown:
        breakdown = quote_window(spot_type, window, self.policy)
        logger.debug(
            "Quoted %s %s-%s: %d (%.2fh x%.2f x%.2f)",
            spot_type.value,
            window.start.isoformat(),
            window.end.isoformat(),
            breakdown.final_price,
            breakdown.duration_hours,
            breakdown.multiplier,
            breakdown.discount_factor,
        )
        if self._metrics is not None:
            labels = {"spot_type": spot_type.value}
            self._metrics.inc_counter(PRICE_QUOTES_TOTAL, labels=labels)
            self._metrics.observe_histogram(
                QUOTED_PRICE, breakdown.final_price, labels=labels
            )
        return breakdown


__all__ = [
    "PricingCalculator",
    "discount_factor",
    "quote",
    "quote_window",
    "round_half_away_from_zero",
    "time_multiplier",
]
