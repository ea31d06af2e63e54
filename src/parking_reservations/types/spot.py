# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Parking spot types.

A spot is a single physical parking space, typed and individually reservable.
Spot records are supplied read-only by the facility catalog and mutated only
through SpotInventory transitions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SpotType(Enum):
    """Kind of parking space. Each type has its own hourly base rate."""

    STANDARD = "standard"
    COMPACT = "compact"
    ACCESSIBLE = "accessible"
    ELECTRIC = "electric"


class SpotStatus(Enum):
    """
    Availability of a spot.

    - AVAILABLE: No live reservation references the spot.
    - RESERVED: At least one upcoming reservation holds the spot.
    - OCCUPIED: A reservation on the spot is currently active.
    - DISABLED: Out of service for maintenance, excluded from reservation.
    """

    AVAILABLE = "available"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
    DISABLED = "disabled"

    @property
    def is_held(self) -> bool:
        return self in (SpotStatus.RESERVED, SpotStatus.OCCUPIED)


@dataclass
class ParkingSpot:
    """
    A single reservable parking space.

    Attributes:
        spot_id: Unique spot identifier
        facility_id: Facility the spot belongs to
        spot_number: Human-facing label (e.g. "A-12")
        spot_type: Kind of space, determines the base rate
        status: Current availability
        version: Optimistic concurrency version, bumped on every commit
    """

    spot_id: str
    facility_id: str
    spot_number: str
    spot_type: SpotType
    status: SpotStatus = SpotStatus.AVAILABLE
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "spot_id": self.spot_id,
            "facility_id": self.facility_id,
            "spot_number": self.spot_number,
            "spot_type": self.spot_type.value,
            "status": self.status.value,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParkingSpot":
        return cls(
            spot_id=data["spot_id"],
            facility_id=data["facility_id"],
            spot_number=data["spot_number"],
            spot_type=SpotType(data["spot_type"]),
            status=SpotStatus(data.get("status", SpotStatus.AVAILABLE.value)),
            version=int(data.get("version", 0)),
        )


__all__ = ["ParkingSpot", "SpotStatus", "SpotType"]
