"""Errors raised by the queue domain.

Routes translate the base classes to HTTP status codes, so new errors only
need to pick the right parent.
"""

from __future__ import annotations


class QueueError(RuntimeError):
    """Base error for queue operations."""


class NotFoundError(QueueError):
    """Raised when an operation targets an unknown entity."""


class TicketNotFoundError(NotFoundError):
    pass


class CounterNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class ConflictError(QueueError):
    """Raised when an operation clashes with the current queue state."""


class InvalidTicketTransitionError(ConflictError):
    """Raised when a ticket is moved against its lifecycle."""


class CounterBusyError(ConflictError):
    """Raised when a counter already has a ticket being called."""


class CounterInactiveError(ConflictError):
    pass


class CounterAlreadyAssignedError(ConflictError):
    pass


class DuplicateTicketError(ConflictError):
    pass


class UsernameTakenError(ConflictError):
    pass


class ScanRejectedError(ConflictError):
    """Raised when a scanned code matches no waiting ticket."""


class QueueValidationError(QueueError, ValueError):
    """Raised when an input is missing or malformed."""


class PermissionDeniedError(QueueError):
    """Raised when the acting user may not perform an operation."""


class ProtectedUserError(PermissionDeniedError):
    """Raised when trying to delete the seed administrator."""


class AuthenticationError(QueueError):
    """Raised for unknown credentials or session tokens."""
