# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Price breakdown returned by the pricing calculator."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Result of pricing a time window.

    Attributes:
        base_price: Hourly base rate for the spot type, in currency units
        final_price: Rounded total price, in whole currency units
        duration_hours: Window length in hours (fractional permitted)
        multiplier: Time-of-day multiplier (peak, off-peak or 1.0)
        discount_factor: Duration discount factor (1.0 when no discount applies)
    """

    base_price: int
    final_price: int
    duration_hours: float
    multiplier: float
    discount_factor: float

    @property
    def subtotal(self) -> float:
        """Base rate times duration, before multipliers and rounding."""
        return self.base_price * self.duration_hours

    @property
    def discount_percent(self) -> float:
        """Combined reduction against the undiscounted subtotal, in percent.

        Negative when the peak surcharge outweighs any duration discount.
        """
        return (1 - self.multiplier * self.discount_factor) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_price": self.base_price,
            "final_price": self.final_price,
            "duration_hours": self.duration_hours,
            "multiplier": self.multiplier,
            "discount_factor": self.discount_factor,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceBreakdown":
        return cls(
            base_price=int(data["base_price"]),
            final_price=int(data["final_price"]),
            duration_hours=float(data["duration_hours"]),
            multiplier=float(data["multiplier"]),
            discount_factor=float(data["discount_factor"]),
        )


__all__ = ["PriceBreakdown"]
