"""Public surfaces: the check-in kiosk and the customer's digital pass."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from qmaster.dependencies.queue import QueueServiceDep
from qmaster.queue.errors import QueueError

from ..errors import to_http_exception
from ..schemas import KioskReceiptResponse, PassResponse

router = APIRouter(tags=["kiosk"])


class CheckInRequest(BaseModel):
    code: str | None = Field(default=None, max_length=200)


@router.post("/kiosk/check-in", response_model=KioskReceiptResponse, status_code=status.HTTP_201_CREATED)
async def check_in(service: QueueServiceDep, payload: CheckInRequest | None = None) -> KioskReceiptResponse:
    receipt = await service.check_in(payload.code if payload else None)
    return KioskReceiptResponse.model_validate(receipt)


@router.post("/passes", response_model=PassResponse, status_code=status.HTTP_201_CREATED)
async def join_queue(service: QueueServiceDep) -> PassResponse:
    view = await service.join_queue()
    return PassResponse.model_validate(view)


@router.get("/passes/{ticket_id}", response_model=PassResponse)
async def get_pass(ticket_id: str, service: QueueServiceDep) -> PassResponse:
    view = service.get_pass(ticket_id)
    if view.ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket {ticket_id} not found")
    return PassResponse.model_validate(view)


@router.delete("/passes/{ticket_id}", response_model=PassResponse)
async def abandon_pass(ticket_id: str, service: QueueServiceDep) -> PassResponse:
    try:
        view = await service.abandon_pass(ticket_id)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return PassResponse.model_validate(view)
