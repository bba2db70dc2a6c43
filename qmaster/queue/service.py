from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone, tzinfo
from typing import Callable

from opentelemetry import trace

from qmaster.insights.announcements import announcement_text
from qmaster.insights.reports import (
    ReportRange,
    ReportStatistics,
    TicketSummary,
    compute_report_statistics,
    summarize_tickets,
    tickets_in_range,
)
from qmaster.metrics import MetricsRegistry, register_default_metrics
from qmaster.metrics import definitions as metric_names

from . import queries, reducers
from .errors import (
    AuthenticationError,
    ConflictError,
    CounterNotFoundError,
    PermissionDeniedError,
    ScanRejectedError,
    TicketNotFoundError,
)
from .models import (
    Announcement,
    BoardEntry,
    Counter,
    DisplayBoard,
    KioskReceipt,
    PassView,
    QueueState,
    Ticket,
    User,
    VoicePreference,
)
from .sessions import SessionRegistry
from .state import TicketStatus
from .store import InMemoryQueueStateStore, QueueStateStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MEMBER_PASS_PREFIX = "MEM_"
SCREEN_TAP = "SCREEN_TAP"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:9]}"


class QueueService:
    """High level orchestration of the shared queue state.

    Every mutation goes through a pure reducer, bumps ``version`` and persists
    the whole state to the store. Reads work on the in-memory copy.
    """

    def __init__(
        self,
        store: QueueStateStore | None = None,
        *,
        metrics: MetricsRegistry | None = None,
        sessions: SessionRegistry | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[str], str] = _new_id,
        report_timezone: tzinfo = timezone.utc,
    ) -> None:
        self._store = store or InMemoryQueueStateStore()
        self._metrics = register_default_metrics(metrics or MetricsRegistry())
        self._sessions = sessions or SessionRegistry()
        self._clock = clock
        self._new_id = id_factory
        self._report_timezone = report_timezone
        self._state = reducers.factory_state()
        self._version = 0
        self._lock = asyncio.Lock()

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> QueueState:
        return self._state

    async def load(self) -> QueueState:
        """Restore the persisted state, falling back to factory defaults."""

        async with self._lock:
            stored = await self._store.load()
            if stored is None:
                logger.info("No stored queue state found; starting from factory defaults")
                state = reducers.factory_state()
            else:
                state = reducers.repair_state(stored)
                logger.info(
                    "Loaded queue state with %d tickets (last number %d)", len(state.tickets), state.last_number
                )
            await self._commit(state, "load")
            return state

    async def _commit(self, state: QueueState, operation: str) -> None:
        with tracer.start_as_current_span(f"queue.{operation}") as span:
            self._state = state
            self._version += 1
            span.set_attribute("queue.version", self._version)
            await self._store.save(state)

    # -------------------- permissions --------------------

    @staticmethod
    def _require_admin(actor: User) -> None:
        if not actor.is_full_admin:
            raise PermissionDeniedError("Administrator access required")

    @staticmethod
    def _require_counter_access(actor: User, counter_id: str | None) -> None:
        if actor.is_full_admin:
            return
        if counter_id is None or actor.assigned_counter_id != counter_id:
            raise PermissionDeniedError("Staff can only operate their assigned counter")

    def _counter(self, counter_id: str) -> Counter:
        counter = self._state.find_counter(counter_id)
        if counter is None:
            raise CounterNotFoundError(f"Counter {counter_id} not found")
        return counter

    # -------------------- kiosk & digital pass --------------------

    async def _issue(self, channel: str) -> Ticket:
        state, ticket = reducers.issue_ticket(self._state, ticket_id=self._new_id(""), now=self._clock())
        await self._commit(state, "issue_ticket")
        self._metrics.counter(metric_names.TICKETS_ISSUED).inc(labels={"channel": channel})
        logger.info("Issued ticket #%d (%s) via %s", ticket.number, ticket.id, channel)
        return ticket

    async def check_in(self, code: str | None = None) -> KioskReceipt:
        """Issue a ticket at the kiosk.

        A scanned member pass (``MEM_...``) links the new ticket to that
        member's device; a screen tap does not.
        """

        linked = bool(code) and code.strip().startswith(MEMBER_PASS_PREFIX)
        async with self._lock:
            ticket = await self._issue("kiosk")
            return KioskReceipt(ticket=ticket, linked=linked, waiting_count=queries.waiting_count(self._state))

    async def join_queue(self) -> PassView:
        async with self._lock:
            ticket = await self._issue("pass")
            return self.get_pass(ticket.id)

    def get_pass(self, ticket_id: str | None) -> PassView:
        state = self._state
        ticket = state.find_ticket(ticket_id) if ticket_id else None
        if ticket is None:
            return PassView(ticket=None)
        position = queries.queue_position(state, ticket.id)
        counter = state.find_counter(ticket.counter_id) if ticket.counter_id else None
        return PassView(
            ticket=ticket,
            position=position,
            people_ahead=queries.people_ahead(position),
            counter=counter,
        )

    async def abandon_pass(self, ticket_id: str) -> PassView:
        async with self._lock:
            ticket = self._state.find_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} not found")
            await self._transition(ticket, TicketStatus.CANCELLED, counter_id=None)
            logger.info("Ticket #%d abandoned by its holder", ticket.number)
            return self.get_pass(ticket_id)

    # -------------------- console --------------------

    async def _transition(self, ticket: Ticket, status: TicketStatus, *, counter_id: str | None) -> Ticket:
        state, updated = reducers.update_ticket_status(
            self._state, ticket.id, status, counter_id=counter_id, now=self._clock()
        )
        await self._commit(state, f"ticket_{status.value.lower()}")
        self._record_transition(updated)
        return updated

    def _record_transition(self, ticket: Ticket) -> None:
        counter_label = {"counter": ticket.counter_id or ""}
        if ticket.status is TicketStatus.CALLING:
            self._metrics.counter(metric_names.TICKETS_CALLED).inc(labels=counter_label)
            if ticket.called_at is not None:
                wait = (ticket.called_at - ticket.created_at).total_seconds()
                self._metrics.distribution(metric_names.WAIT_SECONDS).observe(wait)
        elif ticket.status is TicketStatus.SERVED:
            self._metrics.counter(metric_names.TICKETS_SERVED).inc(labels=counter_label)
            if ticket.called_at is not None and ticket.served_at is not None:
                service = (ticket.served_at - ticket.called_at).total_seconds()
                self._metrics.distribution(metric_names.SERVICE_SECONDS).observe(service)
        elif ticket.status is TicketStatus.CANCELLED:
            self._metrics.counter(metric_names.TICKETS_CANCELLED).inc()

    def _announcement(self, ticket: Ticket, counter: Counter, actor: User | None) -> Announcement:
        return Announcement(
            ticket_number=ticket.number,
            counter_id=counter.id,
            counter_name=counter.name,
            voice=queries.resolve_voice(self._state, counter.id, actor),
            text=announcement_text(ticket.number, counter.name),
        )

    async def _call(self, ticket: Ticket, counter_id: str, actor: User) -> Announcement:
        updated = await self._transition(ticket, TicketStatus.CALLING, counter_id=counter_id)
        counter = self._counter(counter_id)
        logger.info("Calling ticket #%d to %s", updated.number, counter.name)
        return self._announcement(updated, counter, actor)

    async def call_next(self, counter_id: str, actor: User) -> Announcement | None:
        """Call the longest waiting ticket to ``counter_id``; ``None`` if nobody waits."""

        self._require_counter_access(actor, counter_id)
        async with self._lock:
            self._counter(counter_id)
            ticket = queries.next_waiting_ticket(self._state)
            if ticket is None:
                return None
            return await self._call(ticket, counter_id, actor)

    async def call_ticket(self, ticket_id: str, counter_id: str, actor: User) -> Announcement:
        self._require_counter_access(actor, counter_id)
        async with self._lock:
            ticket = self._state.find_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} not found")
            return await self._call(ticket, counter_id, actor)

    async def scan_at_counter(self, counter_id: str, code: str, actor: User) -> Announcement:
        """Call the waiting ticket whose QR code was scanned at the counter."""

        self._require_counter_access(actor, counter_id)
        async with self._lock:
            self._counter(counter_id)
            ticket = queries.find_waiting_ticket(self._state, code)
            if ticket is None:
                self._metrics.counter(metric_names.SCANS_REJECTED).inc()
                logger.warning("Scanned code %r does not match a waiting ticket", code)
                raise ScanRejectedError("No waiting ticket matches the scanned code")
            return await self._call(ticket, counter_id, actor)

    async def update_ticket_status(
        self,
        ticket_id: str,
        status: TicketStatus,
        *,
        actor: User,
        counter_id: str | None = None,
    ) -> Ticket:
        async with self._lock:
            ticket = self._state.find_ticket(ticket_id)
            if ticket is None:
                raise TicketNotFoundError(f"Ticket {ticket_id} not found")
            if ticket.counter_id is not None:
                self._require_counter_access(actor, ticket.counter_id)
            elif status is TicketStatus.CALLING:
                self._require_counter_access(actor, counter_id)
            else:
                self._require_admin(actor)
            updated = await self._transition(ticket, status, counter_id=counter_id)
            logger.info("Ticket #%d moved %s -> %s", updated.number, ticket.status.value, status.value)
            return updated

    async def recall(self, counter_id: str, actor: User) -> Announcement:
        self._require_counter_access(actor, counter_id)
        announcement = self.current_announcement(counter_id, actor)
        if announcement is None:
            raise ConflictError(f"Counter {counter_id} has no ticket to recall")
        logger.info("Recalling ticket #%d to %s", announcement.ticket_number, announcement.counter_name)
        return announcement

    def current_announcement(self, counter_id: str, actor: User | None = None) -> Announcement | None:
        counter = self._counter(counter_id)
        ticket = self._state.find_ticket(counter.current_ticket_id) if counter.current_ticket_id else None
        if ticket is None:
            return None
        return self._announcement(ticket, counter, actor)

    def waiting_tickets(self) -> list[Ticket]:
        return queries.waiting_tickets(self._state)

    def list_tickets(self, status: TicketStatus | None = None) -> list[Ticket]:
        return queries.tickets_by_status(self._state, status)

    # -------------------- counters --------------------

    def counters_for(self, actor: User) -> list[Counter]:
        return queries.visible_counters(self._state, actor)

    async def toggle_counter(self, counter_id: str, actor: User) -> Counter:
        self._require_counter_access(actor, counter_id)
        async with self._lock:
            state, counter = reducers.toggle_counter(self._state, counter_id)
            await self._commit(state, "toggle_counter")
            logger.info("%s is now %s", counter.name, "open" if counter.is_active else "closed")
            return counter

    async def add_counter(self, name: str, actor: User) -> Counter:
        self._require_admin(actor)
        async with self._lock:
            state, counter = reducers.add_counter(self._state, name=name, counter_id=self._new_id("counter-"))
            await self._commit(state, "add_counter")
            logger.info("Added counter %s (%s)", counter.name, counter.id)
            return counter

    # -------------------- staff & sessions --------------------

    def login(self, username: str, password: str) -> tuple[str, User]:
        user = queries.authenticate(self._state, username, password)
        if user is None:
            logger.warning("Failed login attempt for %r", username)
            raise AuthenticationError("Invalid credentials")
        logger.info("%s logged in", user.username)
        return self._sessions.issue(user.id), user

    def logout(self, token: str) -> None:
        self._sessions.revoke(token)

    def current_user(self, token: str | None) -> User:
        user_id = self._sessions.resolve(token)
        user = self._state.find_user(user_id) if user_id else None
        if user is None:
            raise AuthenticationError("Invalid authentication credentials")
        return user

    def list_users(self, actor: User) -> list[User]:
        self._require_admin(actor)
        return list(self._state.users)

    def available_counters(self, actor: User) -> list[Counter]:
        self._require_admin(actor)
        return queries.available_counters_for_registration(self._state)

    async def register_staff(
        self,
        *,
        username: str,
        password: str,
        assigned_counter_id: str,
        actor: User,
        voice_preference: VoicePreference | None = None,
    ) -> User:
        self._require_admin(actor)
        async with self._lock:
            state, user = reducers.register_staff(
                self._state,
                user_id=self._new_id("staff-"),
                username=username,
                password=password,
                assigned_counter_id=assigned_counter_id,
                voice_preference=voice_preference,
            )
            await self._commit(state, "register_staff")
            logger.info("Registered staff %s for counter %s", user.username, assigned_counter_id)
            return user

    async def delete_staff(self, user_id: str, actor: User) -> None:
        self._require_admin(actor)
        async with self._lock:
            state = reducers.delete_staff(self._state, user_id)
            await self._commit(state, "delete_staff")
            revoked = self._sessions.revoke_user(user_id)
            logger.info("Deleted staff %s (%d sessions revoked)", user_id, revoked)

    async def update_voice(self, user_id: str, voice: VoicePreference, actor: User) -> User:
        if actor.id != user_id:
            self._require_admin(actor)
        async with self._lock:
            state, user = reducers.update_voice(self._state, user_id, voice)
            await self._commit(state, "update_voice")
            return user

    # -------------------- system --------------------

    async def reset(self, actor: User) -> QueueState:
        """Wipe everything back to factory defaults and log everyone out."""

        self._require_admin(actor)
        async with self._lock:
            await self._store.clear()
            state = reducers.factory_state()
            await self._commit(state, "reset")
            self._sessions.clear()
            logger.warning("Queue state reset to factory defaults by %s", actor.username)
            return state

    def display_board(self) -> DisplayBoard:
        state = self._state

        def entry(ticket: Ticket) -> BoardEntry:
            counter = state.find_counter(ticket.counter_id) if ticket.counter_id else None
            return BoardEntry(ticket=ticket, counter_name=counter.name if counter else None)

        return DisplayBoard(
            calling=[entry(t) for t in queries.calling_tickets(state)],
            recently_served=[entry(t) for t in queries.recently_served(state)],
            waiting_count=queries.waiting_count(state),
            served_count=queries.served_count(state),
            version=self._version,
        )

    def report(self, report_range: ReportRange, actor: User) -> tuple[list[TicketSummary], ReportStatistics]:
        self._require_admin(actor)
        tickets = tickets_in_range(self._state.tickets, report_range, self._clock())
        rows = summarize_tickets(tickets, self._report_timezone)
        return rows, compute_report_statistics(rows, report_range)
