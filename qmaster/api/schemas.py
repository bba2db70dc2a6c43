"""Response models shared by the route modules."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from qmaster.queue.models import UserRole, VoicePreference
from qmaster.queue.state import TicketStatus


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    number: int
    status: TicketStatus
    created_at: datetime
    counter_id: str | None = None
    called_at: datetime | None = None
    served_at: datetime | None = None


class CounterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    is_active: bool
    current_ticket_id: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    role: UserRole
    assigned_counter_id: str | None = None
    voice_preference: VoicePreference | None = None


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_number: int
    counter_id: str
    counter_name: str
    voice: VoicePreference
    text: str


class PassResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket: TicketResponse | None = None
    position: int = 0
    people_ahead: int = 0
    counter: CounterResponse | None = None
    is_finished: bool = False
    is_active: bool = False


class KioskReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket: TicketResponse
    linked: bool
    waiting_count: int


class BoardEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket: TicketResponse
    counter_name: str | None = None


class DisplayBoardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    calling: list[BoardEntryResponse]
    recently_served: list[BoardEntryResponse]
    waiting_count: int
    served_count: int
    version: int
