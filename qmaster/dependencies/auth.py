from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from qmaster.queue.errors import AuthenticationError
from qmaster.queue.models import User, UserRole
from qmaster.queue.service import QueueService

from .queue import get_queue_service

bearer_scheme = HTTPBearer(auto_error=False)


def has_role(user: User, role: UserRole) -> bool:
    """Full administrators hold every staff permission as well."""

    if role is UserRole.STAFF:
        return True
    return user.role is role


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    service: Annotated[QueueService, Depends(get_queue_service)],
) -> User:
    """Resolve the console session token to the logged-in user."""

    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return service.current_user(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def role_required(role: UserRole) -> Callable[[User], User]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not has_role(user, role):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


require_staff = role_required(UserRole.STAFF)
require_admin = role_required(UserRole.FULL_ADMIN)

CurrentUser = Annotated[User, Depends(get_current_user)]
StaffUser = Annotated[User, Depends(require_staff)]
AdminUser = Annotated[User, Depends(require_admin)]
