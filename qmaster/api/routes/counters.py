from __future__ import annotations

import base64
import binascii
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from qmaster.dependencies.auth import AdminUser, StaffUser
from qmaster.dependencies.queue import QueueServiceDep, get_gemini_client
from qmaster.insights import GeminiClient, pcm_to_wav
from qmaster.queue.errors import QueueError
from qmaster.queue.models import Announcement

from ..errors import to_http_exception
from ..schemas import AnnouncementResponse, CounterResponse

router = APIRouter(prefix="/counters", tags=["counters"])

GeminiClientDep = Annotated[GeminiClient, Depends(get_gemini_client)]


class CounterCreateRequest(BaseModel):
    name: str = Field(..., max_length=100)


class CallTicketRequest(BaseModel):
    ticket_id: str


class ScanRequest(BaseModel):
    code: str = Field(..., max_length=200)


def _announcement(announcement: Announcement) -> AnnouncementResponse:
    return AnnouncementResponse.model_validate(announcement)


@router.get("", response_model=list[CounterResponse], summary="Counters visible to the current user")
async def list_counters(service: QueueServiceDep, user: StaffUser) -> list[CounterResponse]:
    return [CounterResponse.model_validate(counter) for counter in service.counters_for(user)]


@router.post("", response_model=CounterResponse, status_code=status.HTTP_201_CREATED)
async def add_counter(payload: CounterCreateRequest, service: QueueServiceDep, user: AdminUser) -> CounterResponse:
    try:
        counter = await service.add_counter(payload.name, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return CounterResponse.model_validate(counter)


@router.post("/{counter_id}/toggle", response_model=CounterResponse)
async def toggle_counter(counter_id: str, service: QueueServiceDep, user: StaffUser) -> CounterResponse:
    try:
        counter = await service.toggle_counter(counter_id, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return CounterResponse.model_validate(counter)


@router.post("/{counter_id}/call-next", response_model=AnnouncementResponse | None)
async def call_next(counter_id: str, service: QueueServiceDep, user: StaffUser) -> AnnouncementResponse | None:
    try:
        announcement = await service.call_next(counter_id, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return _announcement(announcement) if announcement is not None else None


@router.post("/{counter_id}/call", response_model=AnnouncementResponse)
async def call_ticket(
    counter_id: str,
    payload: CallTicketRequest,
    service: QueueServiceDep,
    user: StaffUser,
) -> AnnouncementResponse:
    try:
        announcement = await service.call_ticket(payload.ticket_id, counter_id, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return _announcement(announcement)


@router.post("/{counter_id}/scan", response_model=AnnouncementResponse, summary="Call a scanned ticket")
async def scan_ticket(
    counter_id: str,
    payload: ScanRequest,
    service: QueueServiceDep,
    user: StaffUser,
) -> AnnouncementResponse:
    try:
        announcement = await service.scan_at_counter(counter_id, payload.code, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return _announcement(announcement)


@router.post("/{counter_id}/recall", response_model=AnnouncementResponse)
async def recall(counter_id: str, service: QueueServiceDep, user: StaffUser) -> AnnouncementResponse:
    try:
        announcement = await service.recall(counter_id, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return _announcement(announcement)


@router.get(
    "/{counter_id}/announcement.wav",
    response_class=Response,
    responses={200: {"content": {"audio/wav": {}}}},
    summary="Spoken announcement for the counter's current ticket",
)
async def announcement_audio(
    counter_id: str,
    service: QueueServiceDep,
    gemini: GeminiClientDep,
    user: StaffUser,
) -> Response:
    try:
        announcement = service.current_announcement(counter_id, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    if announcement is None:
        raise HTTPException(status_code=404, detail=f"Counter {counter_id} is not calling a ticket")

    encoded = await gemini.generate_calling_audio(
        announcement.ticket_number, announcement.counter_name, announcement.voice
    )
    if encoded is None:
        raise HTTPException(status_code=503, detail="Announcement audio is unavailable")
    try:
        wav = pcm_to_wav(base64.b64decode(encoded))
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=503, detail="Announcement audio is unavailable") from exc
    return Response(content=wav, media_type="audio/wav")
