# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for ownership decisions."""

from typing import Protocol, runtime_checkable

from ..types.reservation import Reservation


@runtime_checkable
class IdentityProtocol(Protocol):
    """
    Decides whether a requester may act on a reservation.

    Authentication happens outside the core; requester ids arrive already
    verified.
    """

    def owns(self, requester_id: str, reservation: Reservation) -> bool:
        """Whether requester_id may cancel or otherwise manage reservation."""
        ...


class OwnerIdentity:
    """Default policy: only the reservation's own user may act on it."""

    def owns(self, requester_id: str, reservation: Reservation) -> bool:
        return requester_id == reservation.user_id
