from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from qmaster.queue import reducers
from qmaster.queue.errors import (
    CounterAlreadyAssignedError,
    CounterBusyError,
    CounterInactiveError,
    CounterNotFoundError,
    DuplicateTicketError,
    InvalidTicketTransitionError,
    ProtectedUserError,
    QueueValidationError,
    UserNotFoundError,
    UsernameTakenError,
)
from qmaster.queue.models import ADMIN_USER_ID, QueueState, UserRole, VoicePreference
from qmaster.queue.passwords import verify_password
from qmaster.queue.state import TicketStatus

NOW = datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)


def _state_with_tickets(count: int) -> QueueState:
    state = reducers.factory_state()
    for index in range(count):
        state, _ = reducers.issue_ticket(state, ticket_id=f"t{index}", now=NOW + timedelta(minutes=index))
    return state


def test_factory_state_defaults():
    state = reducers.factory_state()

    assert state.tickets == ()
    assert state.last_number == 100
    assert [c.name for c in state.counters] == ["Counter 1", "Counter 2", "Counter 3", "Counter 4"]
    assert [c.is_active for c in state.counters] == [True, True, False, False]
    admin = state.find_user(ADMIN_USER_ID)
    assert admin is not None
    assert admin.role is UserRole.FULL_ADMIN
    assert verify_password("123", admin.password_hash)


def test_repair_state_restores_missing_collections():
    repaired = reducers.repair_state(QueueState(last_number=140))

    assert len(repaired.counters) == 4
    assert repaired.find_user(ADMIN_USER_ID) is not None
    assert repaired.last_number == 140


def test_issue_ticket_numbers_strictly_increase():
    state = _state_with_tickets(3)

    assert [t.number for t in state.tickets] == [101, 102, 103]
    assert state.last_number == 103
    assert all(t.status is TicketStatus.WAITING for t in state.tickets)


def test_issue_ticket_rejects_duplicate_id():
    state = _state_with_tickets(1)

    with pytest.raises(DuplicateTicketError):
        reducers.issue_ticket(state, ticket_id="t0", now=NOW)


def test_calling_assigns_counter_and_timestamp():
    state = _state_with_tickets(1)
    called_at = NOW + timedelta(minutes=5)

    state, ticket = reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="1", now=called_at)

    assert ticket.status is TicketStatus.CALLING
    assert ticket.counter_id == "1"
    assert ticket.called_at == called_at
    assert state.find_counter("1").current_ticket_id == "t0"


def test_serving_clears_counter():
    state = _state_with_tickets(1)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="1", now=NOW)

    state, ticket = reducers.update_ticket_status(state, "t0", TicketStatus.SERVED, now=NOW + timedelta(minutes=3))

    assert ticket.served_at == NOW + timedelta(minutes=3)
    assert ticket.counter_id == "1"
    assert state.find_counter("1").current_ticket_id is None


def test_cancel_waiting_ticket_without_counter():
    state = _state_with_tickets(1)

    state, ticket = reducers.update_ticket_status(state, "t0", TicketStatus.CANCELLED, now=NOW)

    assert ticket.status is TicketStatus.CANCELLED
    assert ticket.counter_id is None


def test_counter_holds_one_ticket_at_a_time():
    state = _state_with_tickets(2)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="1", now=NOW)

    with pytest.raises(CounterBusyError):
        reducers.update_ticket_status(state, "t1", TicketStatus.CALLING, counter_id="1", now=NOW)


def test_calling_requires_open_counter():
    state = _state_with_tickets(1)

    with pytest.raises(CounterInactiveError):
        reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="3", now=NOW)
    with pytest.raises(CounterNotFoundError):
        reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="missing", now=NOW)
    with pytest.raises(QueueValidationError):
        reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, now=NOW)


def test_closing_ticket_from_another_counter_is_rejected():
    state = _state_with_tickets(1)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="1", now=NOW)

    for status in (TicketStatus.SERVED, TicketStatus.CANCELLED):
        with pytest.raises(QueueValidationError):
            reducers.update_ticket_status(state, "t0", status, counter_id="2", now=NOW)

    state, ticket = reducers.update_ticket_status(state, "t0", TicketStatus.SERVED, counter_id="1", now=NOW)
    assert ticket.counter_id == "1"
    assert state.find_counter("1").current_ticket_id is None
    assert state.find_counter("2").current_ticket_id is None


def test_closing_ticket_frees_every_counter_holding_it():
    state = _state_with_tickets(2)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="1", now=NOW)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.CANCELLED, now=NOW)

    state, ticket = reducers.update_ticket_status(state, "t1", TicketStatus.CALLING, counter_id="1", now=NOW)

    assert ticket.counter_id == "1"
    assert state.find_counter("1").current_ticket_id == "t1"


def test_served_ticket_cannot_move_again():
    state = _state_with_tickets(1)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.CALLING, counter_id="1", now=NOW)
    state, _ = reducers.update_ticket_status(state, "t0", TicketStatus.SERVED, now=NOW)

    with pytest.raises(InvalidTicketTransitionError):
        reducers.update_ticket_status(state, "t0", TicketStatus.CANCELLED, now=NOW)


def test_toggle_and_add_counter():
    state = reducers.factory_state()

    state, counter = reducers.toggle_counter(state, "3")
    assert counter.is_active
    state, counter = reducers.add_counter(state, name="  Express  ", counter_id="counter-x")
    assert counter.name == "Express"
    assert counter.is_active
    assert state.find_counter("counter-x") is not None

    with pytest.raises(QueueValidationError, match="Please enter a counter name"):
        reducers.add_counter(state, name="   ", counter_id="counter-y")
    with pytest.raises(CounterNotFoundError):
        reducers.toggle_counter(state, "missing")


def test_register_staff_enforces_one_counter_per_staff():
    state = reducers.factory_state()
    state, user = reducers.register_staff(
        state, user_id="staff-1", username="alice", password="pw", assigned_counter_id="1"
    )

    assert user.role is UserRole.STAFF
    assert user.voice_preference is VoicePreference.MAN
    assert verify_password("pw", user.password_hash)

    with pytest.raises(CounterAlreadyAssignedError):
        reducers.register_staff(state, user_id="staff-2", username="bob", password="pw", assigned_counter_id="1")
    with pytest.raises(UsernameTakenError):
        reducers.register_staff(state, user_id="staff-3", username="alice", password="pw", assigned_counter_id="2")
    with pytest.raises(QueueValidationError, match="Fill all fields"):
        reducers.register_staff(state, user_id="staff-4", username="", password="pw", assigned_counter_id="2")
    with pytest.raises(CounterNotFoundError):
        reducers.register_staff(state, user_id="staff-5", username="carol", password="pw", assigned_counter_id="9")


def test_delete_staff_protects_administrator():
    state = reducers.factory_state()
    state, user = reducers.register_staff(
        state, user_id="staff-1", username="alice", password="pw", assigned_counter_id="2"
    )

    with pytest.raises(ProtectedUserError):
        reducers.delete_staff(state, ADMIN_USER_ID)

    state = reducers.delete_staff(state, user.id)
    assert state.find_user(user.id) is None
    with pytest.raises(UserNotFoundError):
        reducers.delete_staff(state, user.id)


def test_update_voice():
    state = reducers.factory_state()

    state, admin = reducers.update_voice(state, ADMIN_USER_ID, VoicePreference.WOMAN)

    assert admin.voice_preference is VoicePreference.WOMAN
    assert state.find_user(ADMIN_USER_ID).voice_preference is VoicePreference.WOMAN
