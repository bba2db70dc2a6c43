"""Pure updates of the queue state.

Every function takes a ``QueueState`` and returns a new one; nothing here
touches storage, clocks or random ids. Callers supply ``now`` and new ids.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from .errors import (
    CounterAlreadyAssignedError,
    CounterBusyError,
    CounterInactiveError,
    CounterNotFoundError,
    DuplicateTicketError,
    ProtectedUserError,
    QueueValidationError,
    TicketNotFoundError,
    UserNotFoundError,
    UsernameTakenError,
)
from .models import ADMIN_USER_ID, Counter, QueueState, Ticket, User, UserRole, VoicePreference
from .passwords import hash_password
from .state import TicketStateMachine, TicketStatus

INITIAL_LAST_NUMBER = 100


def default_counters() -> tuple[Counter, ...]:
    return (
        Counter(id="1", name="Counter 1", is_active=True),
        Counter(id="2", name="Counter 2", is_active=True),
        Counter(id="3", name="Counter 3", is_active=False),
        Counter(id="4", name="Counter 4", is_active=False),
    )


def default_users() -> tuple[User, ...]:
    return (
        User(
            id=ADMIN_USER_ID,
            username="admin",
            password_hash=hash_password("123"),
            role=UserRole.FULL_ADMIN,
        ),
    )


def factory_state() -> QueueState:
    return QueueState(
        tickets=(),
        counters=default_counters(),
        users=default_users(),
        last_number=INITIAL_LAST_NUMBER,
    )


def repair_state(state: QueueState) -> QueueState:
    """Restore the default counters or users when a snapshot has none."""

    if not state.counters:
        state = replace(state, counters=default_counters())
    if not state.users:
        state = replace(state, users=default_users())
    return state


# -------------------- tickets --------------------


def issue_ticket(state: QueueState, *, ticket_id: str, now: datetime) -> tuple[QueueState, Ticket]:
    if state.find_ticket(ticket_id) is not None:
        raise DuplicateTicketError(f"Ticket {ticket_id} already exists")

    number = state.last_number + 1
    ticket = Ticket(
        id=ticket_id,
        number=number,
        status=TicketStateMachine.initial_state(),
        created_at=now,
    )
    return replace(state, tickets=(*state.tickets, ticket), last_number=number), ticket


def update_ticket_status(
    state: QueueState,
    ticket_id: str,
    status: TicketStatus,
    *,
    now: datetime,
    counter_id: str | None = None,
) -> tuple[QueueState, Ticket]:
    ticket = state.find_ticket(ticket_id)
    if ticket is None:
        raise TicketNotFoundError(f"Ticket {ticket_id} not found")

    TicketStateMachine.assert_transition(ticket.status, status)

    # only a call may (re)assign the counter
    if status is not TicketStatus.CALLING and counter_id and counter_id != ticket.counter_id:
        raise QueueValidationError(f"Ticket {ticket_id} is not held by counter {counter_id}")

    target_counter_id = counter_id or ticket.counter_id
    counter = state.find_counter(target_counter_id) if target_counter_id else None
    if target_counter_id and counter is None:
        raise CounterNotFoundError(f"Counter {target_counter_id} not found")

    if status is TicketStatus.CALLING:
        if counter is None:
            raise QueueValidationError("A counter is required to call a ticket")
        if not counter.is_active:
            raise CounterInactiveError(f"{counter.name} is closed")
        if counter.current_ticket_id is not None:
            raise CounterBusyError(f"{counter.name} is already serving another ticket")

    updated = replace(
        ticket,
        status=status,
        counter_id=target_counter_id,
        called_at=now if status is TicketStatus.CALLING else ticket.called_at,
        served_at=now if status is TicketStatus.SERVED else ticket.served_at,
    )
    tickets = tuple(updated if t.id == ticket_id else t for t in state.tickets)

    counters = state.counters
    if status is TicketStatus.CALLING:
        counters = tuple(replace(c, current_ticket_id=ticket_id) if c.id == counter.id else c for c in counters)
    elif TicketStateMachine.is_terminal(status):
        counters = tuple(
            replace(c, current_ticket_id=None) if c.current_ticket_id == ticket_id else c for c in counters
        )

    return replace(state, tickets=tickets, counters=counters), updated


# -------------------- counters --------------------


def toggle_counter(state: QueueState, counter_id: str) -> tuple[QueueState, Counter]:
    counter = state.find_counter(counter_id)
    if counter is None:
        raise CounterNotFoundError(f"Counter {counter_id} not found")
    toggled = replace(counter, is_active=not counter.is_active)
    counters = tuple(toggled if c.id == counter_id else c for c in state.counters)
    return replace(state, counters=counters), toggled


def add_counter(state: QueueState, *, name: str, counter_id: str) -> tuple[QueueState, Counter]:
    name = (name or "").strip()
    if not name:
        raise QueueValidationError("Please enter a counter name")
    counter = Counter(id=counter_id, name=name, is_active=True)
    return replace(state, counters=(*state.counters, counter)), counter


# -------------------- staff --------------------


def register_staff(
    state: QueueState,
    *,
    user_id: str,
    username: str,
    password: str,
    assigned_counter_id: str,
    voice_preference: VoicePreference | None = None,
) -> tuple[QueueState, User]:
    username = (username or "").strip()
    if not username or not password or not assigned_counter_id:
        raise QueueValidationError("Fill all fields")
    if any(u.username == username for u in state.users):
        raise UsernameTakenError(f"Username {username} is already taken")
    if state.find_counter(assigned_counter_id) is None:
        raise CounterNotFoundError(f"Counter {assigned_counter_id} not found")
    if any(u.role is UserRole.STAFF and u.assigned_counter_id == assigned_counter_id for u in state.users):
        raise CounterAlreadyAssignedError(f"Counter {assigned_counter_id} already has a staff member")

    user = User(
        id=user_id,
        username=username,
        password_hash=hash_password(password),
        role=UserRole.STAFF,
        assigned_counter_id=assigned_counter_id,
        voice_preference=voice_preference or VoicePreference.MAN,
    )
    return replace(state, users=(*state.users, user)), user


def delete_staff(state: QueueState, user_id: str) -> QueueState:
    if user_id == ADMIN_USER_ID:
        raise ProtectedUserError("The system administrator cannot be deleted")
    if state.find_user(user_id) is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return replace(state, users=tuple(u for u in state.users if u.id != user_id))


def update_voice(state: QueueState, user_id: str, voice: VoicePreference) -> tuple[QueueState, User]:
    user = state.find_user(user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")
    updated = replace(user, voice_preference=voice)
    return replace(state, users=tuple(updated if u.id == user_id else u for u in state.users)), updated
