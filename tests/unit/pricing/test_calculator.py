"""Pricing rules, including the literal quote scenarios."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from parking_reservations.exceptions import InvalidWindowError
from parking_reservations.observability.collector import UnifiedMetricsCollector
from parking_reservations.observability.constants import (
    PRICE_QUOTES_TOTAL,
    QUOTED_PRICE,
)
from parking_reservations.pricing.calculator import (
    PricingCalculator,
    discount_factor,
    quote,
    round_half_away_from_zero,
    time_multiplier,
)
from parking_reservations.pricing.policy import (
    DEFAULT_PRICING_POLICY,
    DurationTier,
    PricingPolicy,
)
from parking_reservations.types.spot import SpotType

DAY = datetime(2030, 1, 15)


def t(hour: int, minute: int = 0, day: int = 0) -> datetime:
    return DAY + timedelta(days=day, hours=hour, minutes=minute)


class TestLiteralScenarios:
    def test_standard_peak_two_hours(self):
        breakdown = quote(SpotType.STANDARD, t(9), t(11))
        assert breakdown.duration_hours == 2.0
        assert breakdown.multiplier == 1.5
        assert breakdown.discount_factor == 1.0
        assert breakdown.final_price == 150

    def test_electric_exactly_six_hours_gets_no_discount(self):
        breakdown = quote(SpotType.ELECTRIC, t(14), t(20))
        assert breakdown.duration_hours == 6.0
        assert breakdown.multiplier == 1.0
        assert breakdown.discount_factor == 1.0
        assert breakdown.final_price == 360

    def test_compact_overnight_wraps_to_next_day(self):
        breakdown = quote(SpotType.COMPACT, t(23), t(1))
        assert breakdown.duration_hours == 2.0
        assert breakdown.multiplier == 0.8
        assert breakdown.final_price == 64


class TestTimeMultiplier:
    @pytest.mark.parametrize("hour", [8, 9, 10, 17, 18, 19])
    def test_peak_hours_inclusive(self, hour):
        assert time_multiplier(hour, DEFAULT_PRICING_POLICY) == 1.5

    @pytest.mark.parametrize("hour", [0, 3, 5, 23])
    def test_off_peak_hours(self, hour):
        assert time_multiplier(hour, DEFAULT_PRICING_POLICY) == 0.8

    @pytest.mark.parametrize("hour", [6, 7, 11, 16, 20, 21, 22])
    def test_standard_hours(self, hour):
        assert time_multiplier(hour, DEFAULT_PRICING_POLICY) == 1.0

    def test_peak_takes_precedence_over_off_peak(self):
        policy = PricingPolicy(early_cutoff_hour=9)
        assert time_multiplier(8, policy) == policy.peak_multiplier


class TestDiscountFactor:
    @pytest.mark.parametrize(
        ("hours", "expected"),
        [
            (1.0, 1.0),
            (6.0, 1.0),
            (6.01, 0.9),
            (12.0, 0.9),
            (12.5, 0.8),
            (20.0, 0.8),
        ],
    )
    def test_strict_thresholds(self, hours, expected):
        assert discount_factor(hours, DEFAULT_PRICING_POLICY) == expected

    def test_tier_order_does_not_matter(self):
        policy = PricingPolicy(
            duration_tiers=(DurationTier(12, 0.8), DurationTier(6, 0.9))
        )
        assert discount_factor(13, policy) == 0.8
        assert discount_factor(7, policy) == 0.9


class TestQuote:
    def test_half_unit_rounds_up(self):
        # 50 * 6.5h * 0.9 = 292.5
        assert quote(SpotType.STANDARD, t(11), t(17, 30)).final_price == 293

    def test_fractional_hours(self):
        breakdown = quote(SpotType.STANDARD, t(9), t(9, 30))
        assert breakdown.duration_hours == 0.5
        # 50 * 0.5 * 1.5 = 37.5
        assert breakdown.final_price == 38

    def test_twelve_hours_gets_first_tier_only(self):
        assert quote(SpotType.STANDARD, t(11), t(23)).final_price == 540

    def test_thirteen_hours_overnight_gets_second_tier(self):
        breakdown = quote(SpotType.STANDARD, t(11), t(0))
        assert breakdown.duration_hours == 13.0
        assert breakdown.final_price == 520

    def test_peak_and_duration_discount_combine(self):
        # 50 * 8 * 1.5 * 0.9
        assert quote(SpotType.STANDARD, t(8), t(16)).final_price == 540

    def test_end_equal_to_start_is_invalid(self):
        with pytest.raises(InvalidWindowError):
            quote(SpotType.STANDARD, t(9), t(9))

    def test_window_beyond_next_day_is_invalid(self):
        with pytest.raises(InvalidWindowError):
            quote(SpotType.STANDARD, t(23), t(1, day=2))

    def test_mixed_timezone_awareness_is_invalid(self):
        with pytest.raises(InvalidWindowError):
            quote(SpotType.STANDARD, t(9), t(11).replace(tzinfo=timezone.utc))

    def test_deterministic(self):
        first = quote(SpotType.ACCESSIBLE, t(7, 15), t(15, 45))
        second = quote(SpotType.ACCESSIBLE, t(7, 15), t(15, 45))
        assert first == second

    def test_aware_windows_price_by_local_start_hour(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        start = datetime(2030, 1, 15, 9, tzinfo=ist)
        breakdown = quote(SpotType.STANDARD, start, start + timedelta(hours=2))
        assert breakdown.final_price == 150

    def test_custom_policy_rates(self):
        policy = PricingPolicy(
            base_rates={
                SpotType.STANDARD: 100,
                SpotType.COMPACT: 80,
                SpotType.ACCESSIBLE: 90,
                SpotType.ELECTRIC: 120,
            }
        )
        assert quote(SpotType.ELECTRIC, t(12), t(13), policy).final_price == 120

    def test_discount_percent_reflects_surcharge(self):
        assert quote(SpotType.STANDARD, t(9), t(11)).discount_percent == pytest.approx(
            -50.0
        )


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("0.5", 1), ("1.49", 1), ("2.5", 3), ("-2.5", -3), ("292.5", 293)],
    )
    def test_half_away_from_zero(self, value, expected):
        assert round_half_away_from_zero(Decimal(value)) == expected


class TestPricingCalculator:
    def test_records_quote_metrics(self):
        collector = UnifiedMetricsCollector(enable_prometheus=False)
        calculator = PricingCalculator(metrics_collector=collector)

        calculator.quote(SpotType.STANDARD, t(9), t(11))
        calculator.quote(SpotType.STANDARD, t(12), t(13))

        labels = {"spot_type": "standard"}
        assert collector.counter_value(PRICE_QUOTES_TOTAL, labels) == 2
        histogram = collector.get_metrics()["histograms"][QUOTED_PRICE]
        assert histogram["spot_type=standard"]["max"] == 150

    def test_works_without_collector(self):
        calculator = PricingCalculator()
        assert calculator.quote(SpotType.COMPACT, t(23), t(1)).final_price == 64

    def test_uses_bound_policy(self):
        policy = PricingPolicy(peak_multiplier=2.0)
        calculator = PricingCalculator(policy)
        assert calculator.quote(SpotType.STANDARD, t(9), t(11)).final_price == 200
