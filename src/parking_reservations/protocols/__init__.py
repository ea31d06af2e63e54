# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for external collaborators.

Available protocols:
- CatalogProtocol: Read-only source of static spot definitions
- IdentityProtocol: Ownership decision for reservation management

Default implementations:
- StaticCatalog: Catalog over a fixed list of spots
- OwnerIdentity: Only the reservation's user owns it
"""

from .catalog import CatalogProtocol, StaticCatalog
from .identity import IdentityProtocol, OwnerIdentity

__all__ = [
    "CatalogProtocol",
    "IdentityProtocol",
    "OwnerIdentity",
    "StaticCatalog",
]
