import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from qmaster.dependencies.auth import get_current_user, has_role, role_required
from qmaster.queue.models import User, UserRole


def _user(role: UserRole) -> User:
    return User(id="u1", username="alice", password_hash="x", role=role, assigned_counter_id="1")


@pytest.mark.asyncio
async def test_role_required_allows_authorized_user():
    dependency = role_required(UserRole.FULL_ADMIN)
    result = await dependency(_user(UserRole.FULL_ADMIN))  # type: ignore[arg-type]
    assert result.username == "alice"


@pytest.mark.asyncio
async def test_role_required_rejects_staff_for_admin_routes():
    dependency = role_required(UserRole.FULL_ADMIN)
    with pytest.raises(HTTPException) as exc:
        await dependency(_user(UserRole.STAFF))  # type: ignore[arg-type]

    assert exc.value.status_code == 403
    assert exc.value.detail == "Insufficient permissions"


def test_admin_holds_staff_permissions():
    assert has_role(_user(UserRole.FULL_ADMIN), UserRole.STAFF)
    assert has_role(_user(UserRole.STAFF), UserRole.STAFF)
    assert not has_role(_user(UserRole.STAFF), UserRole.FULL_ADMIN)


@pytest.mark.asyncio
async def test_get_current_user_requires_credentials(service):
    with pytest.raises(HTTPException) as exc:
        await get_current_user(None, service)
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException) as exc:
        await get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials="bogus"), service)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user_resolves_session(service):
    token, _ = service.login("admin", "123")

    user = await get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token), service)

    assert user.role is UserRole.FULL_ADMIN
