from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .state import TicketStatus

ADMIN_USER_ID = "admin-1"


class UserRole(str, Enum):
    """Console roles."""

    FULL_ADMIN = "FULL_ADMIN"
    STAFF = "STAFF"


class VoicePreference(str, Enum):
    """Voice used when announcing a called ticket."""

    MAN = "MAN"
    WOMAN = "WOMAN"


@dataclass(frozen=True, slots=True)
class Ticket:
    """A numbered ticket issued at check-in."""

    id: str
    number: int
    status: TicketStatus
    created_at: datetime
    counter_id: str | None = None
    called_at: datetime | None = None
    served_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Counter:
    """A service point that calls tickets."""

    id: str
    name: str
    is_active: bool = True
    current_ticket_id: str | None = None


@dataclass(frozen=True, slots=True)
class User:
    """Console account. Staff accounts are bound to a single counter."""

    id: str
    username: str
    password_hash: str
    role: UserRole
    assigned_counter_id: str | None = None
    voice_preference: VoicePreference | None = None

    @property
    def is_full_admin(self) -> bool:
        return self.role is UserRole.FULL_ADMIN


@dataclass(frozen=True, slots=True)
class QueueState:
    """Aggregate root shared by the kiosk, console, display and pass views."""

    tickets: tuple[Ticket, ...] = ()
    counters: tuple[Counter, ...] = ()
    users: tuple[User, ...] = ()
    last_number: int = 100

    def find_ticket(self, ticket_id: str) -> Ticket | None:
        return next((ticket for ticket in self.tickets if ticket.id == ticket_id), None)

    def find_counter(self, counter_id: str) -> Counter | None:
        return next((counter for counter in self.counters if counter.id == counter_id), None)

    def find_user(self, user_id: str) -> User | None:
        return next((user for user in self.users if user.id == user_id), None)


@dataclass(frozen=True, slots=True)
class Announcement:
    """What gets spoken when a ticket is called or recalled."""

    ticket_number: int
    counter_id: str
    counter_name: str
    voice: VoicePreference
    text: str


@dataclass(frozen=True, slots=True)
class KioskReceipt:
    """Result of a kiosk check-in."""

    ticket: Ticket
    linked: bool
    waiting_count: int


@dataclass(frozen=True, slots=True)
class PassView:
    """The customer's digital pass for one ticket."""

    ticket: Ticket | None
    position: int = 0
    people_ahead: int = 0
    counter: Counter | None = None

    @property
    def is_finished(self) -> bool:
        return self.ticket is not None and self.ticket.status in (TicketStatus.SERVED, TicketStatus.CANCELLED)

    @property
    def is_active(self) -> bool:
        return self.ticket is not None and not self.is_finished


@dataclass(frozen=True, slots=True)
class BoardEntry:
    ticket: Ticket
    counter_name: str | None


@dataclass(frozen=True, slots=True)
class DisplayBoard:
    """Public "now serving" snapshot."""

    calling: list[BoardEntry] = field(default_factory=list)
    recently_served: list[BoardEntry] = field(default_factory=list)
    waiting_count: int = 0
    served_count: int = 0
    version: int = 0
