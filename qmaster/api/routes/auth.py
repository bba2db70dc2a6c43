from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel

from qmaster.dependencies.auth import CurrentUser, bearer_scheme
from qmaster.dependencies.queue import QueueServiceDep
from qmaster.queue.errors import AuthenticationError

from ..schemas import UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, service: QueueServiceDep) -> LoginResponse:
    try:
        token, user = service.login(payload.username, payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    service: QueueServiceDep,
    _: CurrentUser,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
) -> None:
    if credentials is not None:
        service.logout(credentials.credentials)


@router.get("/me", response_model=UserResponse)
async def me(user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(user)
