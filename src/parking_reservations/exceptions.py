# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the parking reservation core.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from ReservationError, making it easy to catch
all reservation-related exceptions with a single except clause.

Business outcomes (InvalidWindowError, ConflictError, NotFoundError,
ForbiddenError, AlreadyCancelledError, InvalidTransitionError) are expected,
user-actionable results. PersistenceError is the generic "try again" failure
and is deliberately not a subclass of any business error.
"""


class ReservationError(Exception):
    """Base exception for all reservation core errors.

    Example:
        try:
            await service.create_reservation(...)
        except ReservationError as e:
            logger.error(f"Reservation failed: {e}")
    """

    pass


class InvalidWindowError(ReservationError):
    """Raised when a time window is malformed or lies in the past.

    Raised before any mutation takes place, so nothing needs to be rolled back.

    Attributes:
        start: The requested window start, if available.
        end: The requested window end, if available.
    """

    def __init__(self, message: str, start: object = None, end: object = None):
        super().__init__(message)
        self.start = start
        self.end = end


class ConflictError(ReservationError):
    """Raised when a window overlaps an existing live reservation on a spot.

    The caller should offer alternative spots or times.

    Attributes:
        spot_id: The spot that could not be reserved.
        conflicting_reservation_id: The live reservation that overlaps, when known.

    Example:
        try:
            await service.create_reservation(spot_id, user_id, ...)
        except ConflictError as e:
            alternatives = await service.find_available_spots(spot_type, start, end)
    """

    def __init__(
        self,
        message: str,
        spot_id: str | None = None,
        conflicting_reservation_id: str | None = None,
    ):
        super().__init__(message)
        self.spot_id = spot_id
        self.conflicting_reservation_id = conflicting_reservation_id


class SpotDisabledError(ConflictError):
    """Raised when reserving a spot that is out of service for maintenance."""

    def __init__(self, spot_id: str):
        super().__init__(f"Spot is disabled: {spot_id}", spot_id=spot_id)


class NotFoundError(ReservationError):
    """Raised when a reservation or spot id is unknown.

    Attributes:
        entity_id: The identifier that was not found.
        entity_kind: "reservation" or "spot".
    """

    def __init__(self, entity_id: str, entity_kind: str = "reservation"):
        super().__init__(f"{entity_kind.capitalize()} not found: {entity_id}")
        self.entity_id = entity_id
        self.entity_kind = entity_kind


class ForbiddenError(ReservationError):
    """Raised when the requester does not own the reservation.

    Attributes:
        reservation_id: The reservation the requester tried to act on.
        requester_id: The requester that failed the ownership check.
    """

    def __init__(self, reservation_id: str, requester_id: str):
        super().__init__(
            f"Requester {requester_id} does not own reservation {reservation_id}"
        )
        self.reservation_id = reservation_id
        self.requester_id = requester_id


class AlreadyCancelledError(ReservationError):
    """Raised when cancelling a reservation that is already cancelled."""

    def __init__(self, reservation_id: str):
        super().__init__(f"Reservation already cancelled: {reservation_id}")
        self.reservation_id = reservation_id


class InvalidTransitionError(ReservationError):
    """Raised when a status transition would move a reservation backwards.

    Attributes:
        reservation_id: The reservation whose transition was rejected.
        current: The current status value.
        target: The requested status value.
    """

    def __init__(self, reservation_id: str, current: str, target: str):
        super().__init__(
            f"Invalid transition for reservation {reservation_id}: "
            f"{current} -> {target}"
        )
        self.reservation_id = reservation_id
        self.current = current
        self.target = target


class PersistenceError(ReservationError):
    """Raised when storage is unavailable or timed out after one retry.

    This is distinguishable from business errors so a UI can show
    "try again" rather than a domain message.

    Attributes:
        operation: The backend operation that failed.
        attempts: How many attempts were made before giving up.
    """

    def __init__(self, message: str, operation: str | None = None, attempts: int = 1):
        super().__init__(message)
        self.operation = operation
        self.attempts = attempts


class BackendError(ReservationError):
    """Base class for errors raised by persistence backends.

    The reservation manager retries these once and then wraps them in
    PersistenceError.
    """

    pass


class BackendConnectionError(BackendError):
    """Raised when connection to the storage backend fails.

    Example:
        try:
            await backend.health_check()
        except BackendConnectionError:
            logger.warning("Redis unavailable")
    """

    pass


class BackendOperationError(BackendError):
    """Raised when a specific backend operation fails.

    This could be due to corrupted records, serialization issues, or
    backend-specific script errors.
    """

    pass


class ConfigurationError(ReservationError):
    """Raised when configuration is invalid.

    Common causes include:
    - Non-positive base rates or multipliers in a pricing policy
    - Peak hour ranges outside 0-23 or with start after end
    - Duplicate duration discount thresholds
    """

    pass


__all__ = [
    "AlreadyCancelledError",
    "BackendConnectionError",
    "BackendError",
    "BackendOperationError",
    "ConfigurationError",
    "ConflictError",
    "ForbiddenError",
    "InvalidTransitionError",
    "InvalidWindowError",
    "NotFoundError",
    "PersistenceError",
    "ReservationError",
    "SpotDisabledError",
]
