from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from qmaster.dependencies.auth import AdminUser, StaffUser
from qmaster.dependencies.queue import QueueServiceDep
from qmaster.queue.errors import QueueError
from qmaster.queue.models import VoicePreference

from ..errors import to_http_exception
from ..schemas import CounterResponse, UserResponse

router = APIRouter(prefix="/staff", tags=["staff"])


class StaffCreateRequest(BaseModel):
    username: str = Field(..., max_length=100)
    password: str = Field(..., max_length=200)
    assigned_counter_id: str
    voice_preference: VoicePreference | None = None


class VoiceUpdateRequest(BaseModel):
    voice_preference: VoicePreference


@router.get("", response_model=list[UserResponse])
async def list_staff(service: QueueServiceDep, user: AdminUser) -> list[UserResponse]:
    try:
        users = service.list_users(user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return [UserResponse.model_validate(item) for item in users]


@router.get(
    "/available-counters",
    response_model=list[CounterResponse],
    summary="Counters a new staff member can be assigned to",
)
async def available_counters(service: QueueServiceDep, user: AdminUser) -> list[CounterResponse]:
    try:
        counters = service.available_counters(user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return [CounterResponse.model_validate(counter) for counter in counters]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_staff(payload: StaffCreateRequest, service: QueueServiceDep, user: AdminUser) -> UserResponse:
    try:
        created = await service.register_staff(
            username=payload.username,
            password=payload.password,
            assigned_counter_id=payload.assigned_counter_id,
            voice_preference=payload.voice_preference,
            actor=user,
        )
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return UserResponse.model_validate(created)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff(user_id: str, service: QueueServiceDep, user: AdminUser) -> None:
    try:
        await service.delete_staff(user_id, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc


@router.put("/{user_id}/voice", response_model=UserResponse)
async def update_voice(
    user_id: str,
    payload: VoiceUpdateRequest,
    service: QueueServiceDep,
    user: StaffUser,
) -> UserResponse:
    try:
        updated = await service.update_voice(user_id, payload.voice_preference, user)
    except QueueError as exc:
        raise to_http_exception(exc) from exc
    return UserResponse.model_validate(updated)
