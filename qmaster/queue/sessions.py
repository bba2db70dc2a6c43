from __future__ import annotations

import secrets


class SessionRegistry:
    """Opaque console session tokens mapped to user ids."""

    def __init__(self) -> None:
        self._sessions: dict[str, str] = {}

    def issue(self, user_id: str) -> str:
        token = secrets.token_urlsafe(24)
        self._sessions[token] = user_id
        return token

    def resolve(self, token: str | None) -> str | None:
        if not token:
            return None
        return self._sessions.get(token)

    def revoke(self, token: str) -> None:
        self._sessions.pop(token, None)

    def revoke_user(self, user_id: str) -> int:
        tokens = [token for token, owner in self._sessions.items() if owner == user_id]
        for token in tokens:
            del self._sessions[token]
        return len(tokens)

    def clear(self) -> None:
        self._sessions.clear()
