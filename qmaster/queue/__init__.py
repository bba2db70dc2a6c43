"""Ticket, counter and staff domain of the queue."""

from .errors import (
    AuthenticationError,
    ConflictError,
    InvalidTicketTransitionError,
    NotFoundError,
    PermissionDeniedError,
    QueueError,
    QueueValidationError,
    ScanRejectedError,
)
from .models import Counter, QueueState, Ticket, User, UserRole, VoicePreference
from .state import TicketStateMachine, TicketStatus
from .store import InMemoryQueueStateStore, PostgresQueueStateStore, QueueStateStore

__all__ = [
    "AuthenticationError",
    "ConflictError",
    "Counter",
    "InMemoryQueueStateStore",
    "InvalidTicketTransitionError",
    "NotFoundError",
    "PermissionDeniedError",
    "PostgresQueueStateStore",
    "QueueError",
    "QueueState",
    "QueueStateStore",
    "QueueValidationError",
    "ScanRejectedError",
    "Ticket",
    "TicketStateMachine",
    "TicketStatus",
    "User",
    "UserRole",
    "VoicePreference",
]
