from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx


class APIError(RuntimeError):
    """The Q-Master API answered with an error or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        if self.status_code is None:
            return super().__str__()
        return f"[{self.status_code}] {super().__str__()}"


def _extract_error_message(response: httpx.Response) -> str:
    """Pull FastAPI's ``detail`` out of an error response."""

    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        return response.text or f"HTTP {response.status_code}"

    if isinstance(detail, str):
        return detail
    # request validation errors come back as a list of {loc, msg, type}
    if isinstance(detail, list) and detail and isinstance(detail[0], Mapping):
        return str(detail[0].get("msg", "Invalid request"))
    return f"HTTP {response.status_code}"


def _decode(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    content_type = response.headers.get("Content-Type", "")
    if content_type.startswith("application/json"):
        return response.json()
    if content_type.startswith("audio/"):
        return response.content
    return response.text


@dataclass(slots=True)
class QMasterAPIClient:
    """Synchronous client the Streamlit views use to reach the API."""

    base_url: str
    token: str | None = None
    timeout: float = 10.0
    default_headers: dict[str, str] = field(default_factory=lambda: {"Accept": "application/json"})

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {**self.default_headers, **kwargs.pop("headers", {})}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = httpx.request(method, self._build_url(path), headers=headers, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as exc:  # pragma: no cover - exercised against a live server only
            raise APIError(f"Could not reach the Q-Master API: {exc}") from exc

        if response.is_error:
            raise APIError(_extract_error_message(response), status_code=response.status_code, response=response)
        return _decode(response)

    def _build_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    # Health
    def ping(self) -> Mapping[str, Any]:
        return self._request("GET", "/ping")

    # Session
    def login(self, *, username: str, password: str) -> Mapping[str, Any]:
        data = self._request("POST", "/auth/login", json={"username": username, "password": password})
        self.token = data["token"]
        return data

    def logout(self) -> None:
        if self.token:
            self._request("POST", "/auth/logout")
        self.token = None

    def me(self) -> Mapping[str, Any]:
        return self._request("GET", "/auth/me")

    # Kiosk and digital pass
    def check_in(self, code: str | None = None) -> Mapping[str, Any]:
        return self._request("POST", "/kiosk/check-in", json={"code": code})

    def join_queue(self) -> Mapping[str, Any]:
        return self._request("POST", "/passes")

    def get_pass(self, ticket_id: str) -> Mapping[str, Any]:
        return self._request("GET", f"/passes/{ticket_id}")

    def abandon_pass(self, ticket_id: str) -> Mapping[str, Any]:
        return self._request("DELETE", f"/passes/{ticket_id}")

    # Display
    def display_board(self) -> Mapping[str, Any]:
        return self._request("GET", "/display")

    # Console
    def list_tickets(self, status: str | None = None) -> list[Mapping[str, Any]]:
        params = {"status": status} if status else None
        data = self._request("GET", "/tickets", params=params)
        return list(data or [])

    def waiting_tickets(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/tickets/waiting") or [])

    def change_ticket_status(self, ticket_id: str, *, status: str, counter_id: str | None = None) -> Mapping[str, Any]:
        payload = {"status": status, "counter_id": counter_id}
        return self._request("POST", f"/tickets/{ticket_id}/status", json=payload)

    def list_counters(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/counters") or [])

    def add_counter(self, name: str) -> Mapping[str, Any]:
        return self._request("POST", "/counters", json={"name": name})

    def toggle_counter(self, counter_id: str) -> Mapping[str, Any]:
        return self._request("POST", f"/counters/{counter_id}/toggle")

    def call_next(self, counter_id: str) -> Mapping[str, Any] | None:
        return self._request("POST", f"/counters/{counter_id}/call-next")

    def call_ticket(self, counter_id: str, ticket_id: str) -> Mapping[str, Any]:
        return self._request("POST", f"/counters/{counter_id}/call", json={"ticket_id": ticket_id})

    def scan(self, counter_id: str, code: str) -> Mapping[str, Any]:
        return self._request("POST", f"/counters/{counter_id}/scan", json={"code": code})

    def recall(self, counter_id: str) -> Mapping[str, Any]:
        return self._request("POST", f"/counters/{counter_id}/recall")

    def announcement_audio(self, counter_id: str) -> bytes:
        return self._request("GET", f"/counters/{counter_id}/announcement.wav", headers={"Accept": "audio/wav"})

    # Staff
    def list_staff(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/staff") or [])

    def available_counters(self) -> list[Mapping[str, Any]]:
        return list(self._request("GET", "/staff/available-counters") or [])

    def register_staff(
        self,
        *,
        username: str,
        password: str,
        assigned_counter_id: str,
        voice_preference: str | None = None,
    ) -> Mapping[str, Any]:
        payload = {
            "username": username,
            "password": password,
            "assigned_counter_id": assigned_counter_id,
            "voice_preference": voice_preference,
        }
        return self._request("POST", "/staff", json=payload)

    def delete_staff(self, user_id: str) -> None:
        self._request("DELETE", f"/staff/{user_id}")

    def update_voice(self, user_id: str, voice_preference: str) -> Mapping[str, Any]:
        return self._request("PUT", f"/staff/{user_id}/voice", json={"voice_preference": voice_preference})

    # System and reports
    def reset(self) -> Mapping[str, Any]:
        return self._request("POST", "/system/reset")

    def report_summary(self, report_range: str = "WEEK") -> Mapping[str, Any]:
        return self._request("GET", "/reports/summary", params={"range": report_range})

    def report_insights(self, report_range: str = "WEEK") -> Mapping[str, Any]:
        return self._request("POST", "/reports/insights", json={"range": report_range})
