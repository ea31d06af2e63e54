# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Pricing policy configuration.

A PricingPolicy is immutable configuration read by the pricing calculator:
hourly base rates per spot type, peak and off-peak hour rules, and duration
discount tiers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..exceptions import ConfigurationError
from ..types.spot import SpotType


@dataclass(frozen=True)
class PeakRange:
    """Inclusive range of start hours (0-23) billed at the peak multiplier."""

    start_hour: int
    end_hour: int

    def __post_init__(self) -> None:
        if not (0 <= self.start_hour <= 23 and 0 <= self.end_hour <= 23):
            raise ConfigurationError(
                f"peak range hours must be within 0-23, got "
                f"{self.start_hour}-{self.end_hour}"
            )
        if self.start_hour > self.end_hour:
            raise ConfigurationError(
                f"peak range start must not be after end, got "
                f"{self.start_hour}-{self.end_hour}"
            )

    def contains(self, hour: int) -> bool:
        return self.start_hour <= hour <= self.end_hour


@dataclass(frozen=True)
class DurationTier:
    """Discount applied when a booking lasts strictly longer than threshold_hours."""

    threshold_hours: float
    multiplier: float

    def __post_init__(self) -> None:
        if self.threshold_hours <= 0:
            raise ConfigurationError("duration tier threshold must be positive")
        if not 0 < self.multiplier <= 1.0:
            raise ConfigurationError(
                "duration tier multiplier must be between 0 and 1.0"
            )


def _default_base_rates() -> Mapping[SpotType, int]:
    return {
        SpotType.STANDARD: 50,
        SpotType.COMPACT: 40,
        SpotType.ACCESSIBLE: 45,
        SpotType.ELECTRIC: 60,
    }


@dataclass(frozen=True)
class PricingPolicy:
    """
    Immutable pricing configuration.

    Defaults reproduce the production tariff: standard 50, compact 40,
    accessible 45, electric 60 per hour; peak 08-10 and 17-19 at x1.5;
    off-peak before 06 or after 22 at x0.8; x0.9 above 6 hours and x0.8
    above 12 hours.
    """

    base_rates: Mapping[SpotType, int] = field(default_factory=_default_base_rates)
    """Hourly base rate per spot type, in whole currency units."""

    peak_ranges: tuple[PeakRange, ...] = (PeakRange(8, 10), PeakRange(17, 19))
    """Inclusive start-hour ranges billed at peak_multiplier."""

    peak_multiplier: float = 1.5
    off_peak_multiplier: float = 0.8

    early_cutoff_hour: int = 6
    """Start hours strictly before this are off-peak."""

    late_cutoff_hour: int = 22
    """Start hours strictly after this are off-peak."""

    duration_tiers: tuple[DurationTier, ...] = (
        DurationTier(6, 0.9),
        DurationTier(12, 0.8),
    )
    """Duration discounts; the tier with the largest exceeded threshold wins."""

    currency_symbol: str = "₹"

    def __post_init__(self) -> None:
        """Validate and freeze the policy."""
        missing = [t.value for t in SpotType if t not in self.base_rates]
        if missing:
            raise ConfigurationError(f"missing base rates for: {', '.join(missing)}")
        for spot_type, rate in self.base_rates.items():
            if rate <= 0:
                raise ConfigurationError(
                    f"base rate for {spot_type.value} must be positive"
                )
        if self.peak_multiplier <= 0 or self.off_peak_multiplier <= 0:
            raise ConfigurationError("time multipliers must be positive")
        if not 0 <= self.early_cutoff_hour <= self.late_cutoff_hour <= 23:
            raise ConfigurationError(
                "off-peak cutoffs must satisfy 0 <= early <= late <= 23"
            )
        thresholds = [tier.threshold_hours for tier in self.duration_tiers]
        if len(set(thresholds)) != len(thresholds):
            raise ConfigurationError("duration tier thresholds must be unique")

        object.__setattr__(self, "base_rates", MappingProxyType(dict(self.base_rates)))
        object.__setattr__(self, "peak_ranges", tuple(self.peak_ranges))
        object.__setattr__(
            self,
            "duration_tiers",
            tuple(
                sorted(
                    self.duration_tiers,
                    key=lambda tier: tier.threshold_hours,
                    reverse=True,
                )
            ),
        )

    def base_rate(self, spot_type: SpotType) -> int:
        return self.base_rates[spot_type]

    def is_peak_hour(self, hour: int) -> bool:
        return any(peak.contains(hour) for peak in self.peak_ranges)

    def is_off_peak_hour(self, hour: int) -> bool:
        return hour < self.early_cutoff_hour or hour > self.late_cutoff_hour


DEFAULT_PRICING_POLICY = PricingPolicy()


__all__ = [
    "DEFAULT_PRICING_POLICY",
    "DurationTier",
    "PeakRange",
    "PricingPolicy",
]
