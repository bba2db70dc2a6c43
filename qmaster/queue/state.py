from __future__ import annotations

from enum import Enum

from .errors import InvalidTicketTransitionError


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    WAITING = "WAITING"
    CALLING = "CALLING"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    Tickets only move forward: a waiting ticket is called to a counter and is
    then either served or cancelled. Cancelling is also possible straight from
    the waiting state.
    """

    _TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
        TicketStatus.WAITING: {TicketStatus.CALLING, TicketStatus.CANCELLED},
        TicketStatus.CALLING: {TicketStatus.SERVED, TicketStatus.CANCELLED},
        TicketStatus.SERVED: set(),
        TicketStatus.CANCELLED: set(),
    }

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.WAITING

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return not cls._TRANSITIONS.get(status)

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise InvalidTicketTransitionError(
                f"Invalid ticket status transition: {current.value} -> {new.value}"
            )
