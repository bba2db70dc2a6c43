"""Persistence of the whole queue state.

The state is always written wholesale under a single key, mirroring what the
browser front end keeps in local storage. Payloads use the browser's field
names and epoch-millisecond timestamps so both sides can read the other's
snapshot.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Protocol

import asyncpg

from .models import Counter, QueueState, Ticket, User, UserRole, VoicePreference
from .passwords import hash_password
from .state import TicketStatus

logger = logging.getLogger(__name__)

STATE_KEY = "q_system_state"


class QueueStateStore(Protocol):
    async def load(self) -> QueueState | None:
        ...

    async def save(self, state: QueueState) -> None:
        ...

    async def clear(self) -> None:
        ...


def _to_millis(value: datetime | None) -> int | None:
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def _millis_to_datetime(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def _from_millis(value: Any) -> datetime | None:
    if value is None:
        return None
    return _millis_to_datetime(value)


def _drop_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


def state_to_payload(state: QueueState) -> dict[str, Any]:
    return {
        "tickets": [
            _drop_none(
                {
                    "id": t.id,
                    "number": t.number,
                    "status": t.status.value,
                    "counterId": t.counter_id,
                    "createdAt": _to_millis(t.created_at),
                    "calledAt": _to_millis(t.called_at),
                    "servedAt": _to_millis(t.served_at),
                }
            )
            for t in state.tickets
        ],
        "counters": [
            _drop_none(
                {
                    "id": c.id,
                    "name": c.name,
                    "isActive": c.is_active,
                    "currentTicketId": c.current_ticket_id,
                }
            )
            for c in state.counters
        ],
        "users": [
            _drop_none(
                {
                    "id": u.id,
                    "username": u.username,
                    "passwordHash": u.password_hash,
                    "role": u.role.value,
                    "assignedCounterId": u.assigned_counter_id,
                    "voicePreference": u.voice_preference.value if u.voice_preference else None,
                }
            )
            for u in state.users
        ],
        "lastNumber": state.last_number,
    }


def _ticket_from_payload(raw: Mapping[str, Any]) -> Ticket:
    return Ticket(
        id=str(raw["id"]),
        number=int(raw["number"]),
        status=TicketStatus(str(raw["status"])),
        counter_id=raw.get("counterId"),
        created_at=_millis_to_datetime(raw["createdAt"]),
        called_at=_from_millis(raw.get("calledAt")),
        served_at=_from_millis(raw.get("servedAt")),
    )


def _counter_from_payload(raw: Mapping[str, Any]) -> Counter:
    return Counter(
        id=str(raw["id"]),
        name=str(raw["name"]),
        is_active=bool(raw.get("isActive", True)),
        current_ticket_id=raw.get("currentTicketId"),
    )


def _user_from_payload(raw: Mapping[str, Any]) -> User:
    voice = raw.get("voicePreference")
    # browser snapshots carry the plain password
    password_hash = raw.get("passwordHash")
    if not password_hash:
        # an empty hash never verifies
        password_hash = hash_password(str(raw["password"])) if raw.get("password") else ""
    return User(
        id=str(raw["id"]),
        username=str(raw["username"]),
        password_hash=str(password_hash),
        role=UserRole(str(raw["role"])),
        assigned_counter_id=raw.get("assignedCounterId"),
        voice_preference=VoicePreference(voice) if voice else None,
    )


def state_from_payload(payload: Mapping[str, Any]) -> QueueState:
    return QueueState(
        tickets=tuple(_ticket_from_payload(raw) for raw in payload.get("tickets") or ()),
        counters=tuple(_counter_from_payload(raw) for raw in payload.get("counters") or ()),
        users=tuple(_user_from_payload(raw) for raw in payload.get("users") or ()),
        last_number=int(payload.get("lastNumber", 100)),
    )


def decode_snapshot(raw: Any) -> QueueState | None:
    """Parse a stored snapshot, returning ``None`` when it is unusable."""

    if raw is None:
        return None
    try:
        payload = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        if not isinstance(payload, Mapping):
            raise TypeError(f"expected an object, got {type(payload).__name__}")
        return state_from_payload(payload)
    except (ValueError, KeyError, TypeError) as exc:
        logger.error("Failed to parse queue state: %s", exc)
        return None


class InMemoryQueueStateStore:
    """Keeps the serialized snapshot in process memory."""

    def __init__(self) -> None:
        self._snapshot: str | None = None

    async def load(self) -> QueueState | None:
        return decode_snapshot(self._snapshot)

    async def save(self, state: QueueState) -> None:
        self._snapshot = json.dumps(state_to_payload(state))

    async def clear(self) -> None:
        self._snapshot = None


class PostgresQueueStateStore:
    """Stores the snapshot as a JSONB document in PostgreSQL."""

    _CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS queue_state_snapshots (
        key TEXT PRIMARY KEY,
        payload JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _SELECT_SQL = """
    SELECT payload FROM queue_state_snapshots WHERE key = $1
    """

    _UPSERT_SQL = """
    INSERT INTO queue_state_snapshots (key, payload, updated_at)
    VALUES ($1, $2::jsonb, CURRENT_TIMESTAMP)
    ON CONFLICT (key) DO UPDATE
    SET payload = EXCLUDED.payload,
        updated_at = EXCLUDED.updated_at
    """

    _DELETE_SQL = """
    DELETE FROM queue_state_snapshots WHERE key = $1
    """

    def __init__(self, pool: asyncpg.Pool, *, key: str = STATE_KEY) -> None:
        self._pool = pool
        self._key = key

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_TABLE_SQL)

    async def load(self) -> QueueState | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_SQL, self._key)
        if row is None:
            return None
        return decode_snapshot(row["payload"])

    async def save(self, state: QueueState) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._UPSERT_SQL, self._key, json.dumps(state_to_payload(state)))

    async def clear(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._DELETE_SQL, self._key)
