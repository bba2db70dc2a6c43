from __future__ import annotations

from datetime import timedelta

import pytest

from qmaster.insights import ReportRange
from qmaster.metrics import definitions as metric_names
from qmaster.queue.errors import (
    AuthenticationError,
    ConflictError,
    CounterBusyError,
    PermissionDeniedError,
    ScanRejectedError,
    TicketNotFoundError,
)
from qmaster.queue.models import VoicePreference
from qmaster.queue.service import SCREEN_TAP
from qmaster.queue.state import TicketStatus
from qmaster.queue.store import InMemoryQueueStateStore


async def _register(service, admin, *, username="alice", counter_id="2", voice=None):
    return await service.register_staff(
        username=username,
        password="pw",
        assigned_counter_id=counter_id,
        voice_preference=voice,
        actor=admin,
    )


@pytest.mark.asyncio
async def test_check_in_issues_sequential_tickets(service):
    first = await service.check_in(SCREEN_TAP)
    second = await service.check_in("MEM_USER_DEFAULT")

    assert first.ticket.number == 101
    assert not first.linked
    assert second.ticket.number == 102
    assert second.linked
    assert second.waiting_count == 2
    issued = service.metrics.counter(metric_names.TICKETS_ISSUED).snapshot()
    assert issued[("kiosk",)]["value"] == 2.0


@pytest.mark.asyncio
async def test_digital_pass_tracks_position(service, admin):
    first = await service.join_queue()
    second = await service.join_queue()

    assert second.position == 2
    assert second.people_ahead == 1
    assert second.is_active

    await service.call_next("1", admin)
    view = service.get_pass(second.ticket.id)
    assert view.position == 1
    assert view.people_ahead == 0

    called = service.get_pass(first.ticket.id)
    assert called.ticket.status is TicketStatus.CALLING
    assert called.counter.name == "Counter 1"
    assert service.get_pass("unknown").ticket is None


@pytest.mark.asyncio
async def test_abandon_pass_cancels_ticket(service):
    view = await service.join_queue()

    cancelled = await service.abandon_pass(view.ticket.id)

    assert cancelled.ticket.status is TicketStatus.CANCELLED
    assert cancelled.is_finished
    with pytest.raises(TicketNotFoundError):
        await service.abandon_pass("missing")


@pytest.mark.asyncio
async def test_call_next_announces_and_records_wait(service, admin):
    await service.check_in()
    await service.check_in()

    announcement = await service.call_next("1", admin)

    assert announcement.ticket_number == 101
    assert announcement.counter_name == "Counter 1"
    assert announcement.voice is VoicePreference.MAN
    assert announcement.text == "Ticket number 101, please proceed to Counter 1."
    assert service.snapshot().find_counter("1").current_ticket_id == "t1"
    wait = service.metrics.distribution(metric_names.WAIT_SECONDS).snapshot()[()]
    assert wait["count"] == 1.0
    assert wait["sum"] == 120.0

    with pytest.raises(CounterBusyError):
        await service.call_next("1", admin)


@pytest.mark.asyncio
async def test_call_next_returns_none_on_empty_queue(service, admin):
    assert await service.call_next("1", admin) is None


@pytest.mark.asyncio
async def test_staff_limited_to_assigned_counter(service, admin):
    staff = await _register(service, admin, voice=VoicePreference.WOMAN)
    await service.check_in()

    with pytest.raises(PermissionDeniedError):
        await service.call_next("1", staff)

    announcement = await service.call_next("2", staff)
    assert announcement.voice is VoicePreference.WOMAN
    assert [c.id for c in service.counters_for(staff)] == ["2"]
    with pytest.raises(PermissionDeniedError):
        service.list_users(staff)


@pytest.mark.asyncio
async def test_staff_cannot_cancel_unassigned_waiting_ticket(service, admin):
    staff = await _register(service, admin)
    receipt = await service.check_in()

    with pytest.raises(PermissionDeniedError):
        await service.update_ticket_status(receipt.ticket.id, TicketStatus.CANCELLED, actor=staff)

    ticket = await service.update_ticket_status(receipt.ticket.id, TicketStatus.CANCELLED, actor=admin)
    assert ticket.status is TicketStatus.CANCELLED


@pytest.mark.asyncio
async def test_staff_cannot_close_another_counters_ticket(service, admin):
    staff = await _register(service, admin)
    await service.check_in()
    announcement = await service.call_next("1", admin)
    ticket_id = service.list_tickets(TicketStatus.CALLING)[0].id

    for counter_id in (None, "2"):
        with pytest.raises(PermissionDeniedError):
            await service.update_ticket_status(ticket_id, TicketStatus.SERVED, actor=staff, counter_id=counter_id)

    assert service.snapshot().find_counter("1").current_ticket_id == ticket_id
    assert service.current_announcement("1").ticket_number == announcement.ticket_number


@pytest.mark.asyncio
async def test_unreadable_snapshot_starts_from_defaults(service_factory):
    store = InMemoryQueueStateStore()
    store._snapshot = "[]"
    service = service_factory(store=store)

    state = await service.load()

    assert state.last_number == 100
    assert [c.id for c in state.counters] == ["1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_scan_at_counter(service, admin):
    receipt = await service.check_in()

    with pytest.raises(ScanRejectedError):
        await service.scan_at_counter("1", "not-a-ticket", admin)
    rejected = service.metrics.counter(metric_names.SCANS_REJECTED).snapshot()
    assert rejected[()]["value"] == 1.0

    announcement = await service.scan_at_counter("1", f" {receipt.ticket.id} ", admin)
    assert announcement.ticket_number == receipt.ticket.number


@pytest.mark.asyncio
async def test_serve_and_recall(service, admin):
    receipt = await service.check_in()
    await service.call_ticket(receipt.ticket.id, "1", admin)

    recalled = await service.recall("1", admin)
    assert recalled.ticket_number == receipt.ticket.number

    served = await service.update_ticket_status(receipt.ticket.id, TicketStatus.SERVED, actor=admin)
    assert served.status is TicketStatus.SERVED
    assert service.current_announcement("1") is None
    with pytest.raises(ConflictError):
        await service.recall("1", admin)

    board = service.display_board()
    assert board.served_count == 1
    assert board.recently_served[0].counter_name == "Counter 1"


@pytest.mark.asyncio
async def test_every_mutation_bumps_version(service, admin):
    start = service.version

    await service.check_in()
    await service.toggle_counter("3", admin)

    assert service.version == start + 2
    assert service.display_board().version == service.version


@pytest.mark.asyncio
async def test_sessions_login_and_logout(service, admin):
    token, user = service.login("admin", "123")
    assert user.id == admin.id
    assert service.current_user(token).username == "admin"

    service.logout(token)
    with pytest.raises(AuthenticationError):
        service.current_user(token)
    with pytest.raises(AuthenticationError):
        service.login("admin", "nope")


@pytest.mark.asyncio
async def test_deleting_staff_revokes_sessions(service, admin):
    staff = await _register(service, admin)
    token, _ = service.login("alice", "pw")

    await service.delete_staff(staff.id, admin)

    with pytest.raises(AuthenticationError):
        service.current_user(token)


@pytest.mark.asyncio
async def test_voice_update_requires_self_or_admin(service, admin):
    alice = await _register(service, admin)
    bob = await _register(service, admin, username="bob", counter_id="3")

    updated = await service.update_voice(alice.id, VoicePreference.WOMAN, alice)
    assert updated.voice_preference is VoicePreference.WOMAN
    with pytest.raises(PermissionDeniedError):
        await service.update_voice(alice.id, VoicePreference.MAN, bob)


@pytest.mark.asyncio
async def test_reset_restores_factory_defaults(service, admin):
    await service.check_in()
    await service.add_counter("Express", admin)
    token, _ = service.login("admin", "123")

    state = await service.reset(admin)

    assert state.tickets == ()
    assert state.last_number == 100
    assert len(state.counters) == 4
    with pytest.raises(AuthenticationError):
        service.current_user(token)


@pytest.mark.asyncio
async def test_state_survives_restart(service_factory):
    store = InMemoryQueueStateStore()
    first = service_factory(store)
    await first.load()
    await first.check_in()
    await first.check_in()

    second = service_factory(store)
    state = await second.load()

    assert [t.number for t in state.tickets] == [101, 102]
    assert state.last_number == 102


@pytest.mark.asyncio
async def test_report_filters_by_range(clock, service, admin):
    old = await service.check_in()
    clock.now += timedelta(days=10)
    recent = await service.check_in()
    await service.call_ticket(recent.ticket.id, "1", admin)
    await service.update_ticket_status(recent.ticket.id, TicketStatus.SERVED, actor=admin)

    rows, stats = service.report(ReportRange.WEEK, admin)

    assert [row.number for row in rows] == [recent.ticket.number]
    assert stats.total == 1
    assert stats.by_status["SERVED"] == 1
    yearly_rows, _ = service.report(ReportRange.YEAR, admin)
    assert {row.number for row in yearly_rows} == {old.ticket.number, recent.ticket.number}
