from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel

from qmaster.dependencies.auth import StaffUser
from qmaster.dependencies.queue import QueueServiceDep
from qmaster.queue.errors import QueueError
from qmaster.queue.models import Ticket
from qmaster.queue.state import TicketStatus

from ..errors import to_http_exception
from ..schemas import TicketResponse

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus
    counter_id: str | None = None


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: QueueServiceDep,
    _: StaffUser,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> list[TicketResponse]:
    return [_to_response(ticket) for ticket in service.list_tickets(status_filter)]


@router.get("/waiting", response_model=list[TicketResponse], summary="Waiting tickets in call order")
async def waiting_tickets(service: QueueServiceDep, _: StaffUser) -> list[TicketResponse]:
    return [_to_response(ticket) for ticket in service.waiting_tickets()]


@router.post("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: str,
    payload: TicketStatusChangeRequest,
    service: QueueServiceDep,
    user: StaffUser,
) -> TicketResponse:
    try:
        ticket = await service.update_ticket_status(
            ticket_id, payload.status, actor=user, counter_id=payload.counter_id
        )
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)
