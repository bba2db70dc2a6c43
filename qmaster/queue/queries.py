"""Read-only views over the queue state."""

from __future__ import annotations

from datetime import datetime, timezone

from .models import Counter, QueueState, Ticket, User, UserRole, VoicePreference
from .passwords import verify_password
from .state import TicketStateMachine, TicketStatus

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def waiting_tickets(state: QueueState) -> list[Ticket]:
    """Waiting tickets in service order (first come, first served)."""

    return sorted(
        (t for t in state.tickets if t.status is TicketStatus.WAITING),
        key=lambda t: (t.created_at, t.number),
    )


def next_waiting_ticket(state: QueueState) -> Ticket | None:
    waiting = waiting_tickets(state)
    return waiting[0] if waiting else None


def queue_position(state: QueueState, ticket_id: str) -> int:
    """1-based position among waiting tickets, 0 if the ticket is not waiting."""

    for index, ticket in enumerate(waiting_tickets(state), start=1):
        if ticket.id == ticket_id:
            return index
    return 0


def people_ahead(position: int) -> int:
    return max(0, position - 1)


def calling_tickets(state: QueueState) -> list[Ticket]:
    return sorted(
        (t for t in state.tickets if t.status is TicketStatus.CALLING),
        key=lambda t: t.called_at or _EPOCH,
        reverse=True,
    )


def recently_served(state: QueueState, limit: int = 8) -> list[Ticket]:
    served = sorted(
        (t for t in state.tickets if t.status is TicketStatus.SERVED),
        key=lambda t: t.served_at or _EPOCH,
        reverse=True,
    )
    return served[:limit]


def tickets_by_status(state: QueueState, status: TicketStatus | None = None) -> list[Ticket]:
    if status is None:
        return list(state.tickets)
    return [t for t in state.tickets if t.status is status]


def waiting_count(state: QueueState) -> int:
    return sum(1 for t in state.tickets if t.status is TicketStatus.WAITING)


def served_count(state: QueueState) -> int:
    return sum(1 for t in state.tickets if t.status is TicketStatus.SERVED)


def has_active_ticket(state: QueueState, ticket_id: str | None) -> bool:
    if not ticket_id:
        return False
    ticket = state.find_ticket(ticket_id)
    return ticket is not None and not TicketStateMachine.is_terminal(ticket.status)


def find_waiting_ticket(state: QueueState, code: str) -> Ticket | None:
    """Match a scanned QR payload against the waiting tickets."""

    code = (code or "").strip()
    if not code:
        return None
    ticket = state.find_ticket(code)
    if ticket is None or ticket.status is not TicketStatus.WAITING:
        return None
    return ticket


def assigned_counter_ids(state: QueueState) -> set[str]:
    return {
        u.assigned_counter_id
        for u in state.users
        if u.role is UserRole.STAFF and u.assigned_counter_id is not None
    }


def available_counters_for_registration(state: QueueState) -> list[Counter]:
    taken = assigned_counter_ids(state)
    return [c for c in state.counters if c.id not in taken]


def visible_counters(state: QueueState, user: User) -> list[Counter]:
    if user.is_full_admin:
        return list(state.counters)
    return [c for c in state.counters if c.id == user.assigned_counter_id]


def staff_for_counter(state: QueueState, counter_id: str) -> User | None:
    return next((u for u in state.users if u.assigned_counter_id == counter_id), None)


def resolve_voice(state: QueueState, counter_id: str, current_user: User | None = None) -> VoicePreference:
    """Voice of the acting user, else of the counter's staff, else a man's voice."""

    if current_user is not None and current_user.voice_preference is not None:
        return current_user.voice_preference
    assigned = staff_for_counter(state, counter_id)
    if assigned is not None and assigned.voice_preference is not None:
        return assigned.voice_preference
    return VoicePreference.MAN


def authenticate(state: QueueState, username: str, password: str) -> User | None:
    for user in state.users:
        if user.username == username and verify_password(password, user.password_hash):
            return user
    return None
