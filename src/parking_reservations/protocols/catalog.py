# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for facility catalog integration."""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from ..types.spot import ParkingSpot


@runtime_checkable
class CatalogProtocol(Protocol):
    """
    Read-only source of static spot definitions.

    The catalog owns facilities and their spot layout. The core only reads
    it once at startup to seed the backend and the inventory.
    """

    async def load_spots(self) -> list[ParkingSpot]:
        """
        Load every spot known to the catalog.

        Returns:
            Spot definitions; their status is recomputed from reservations
        """
        ...


class StaticCatalog:
    """Catalog backed by a fixed list of spots."""

    def __init__(self, spots: Iterable[ParkingSpot]) -> None:
        self._spots = list(spots)

    async def load_spots(self) -> list[ParkingSpot]:
        return list(self._spots)

    def __len__(self) -> int:
        return len(self._spots)
