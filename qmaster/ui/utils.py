from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping


def format_ticket_number(number: Any) -> str:
    """Render a ticket number the way the board and pass show it."""

    return f"#{number}" if number is not None else "-"


def format_time(value: str | None) -> str:
    """Turn an ISO timestamp from the API into ``HH:MM``."""

    if not value:
        return "-"
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%H:%M")


def pass_headline(view: Mapping[str, Any]) -> str:
    ticket = view.get("ticket")
    if not ticket:
        return "No active ticket"
    status = ticket.get("status")
    if status == "WAITING":
        ahead = int(view.get("people_ahead", 0))
        if ahead == 0:
            return "You are next in line"
        return f"{ahead} {'person' if ahead == 1 else 'people'} ahead of you"
    if status == "CALLING":
        counter = view.get("counter") or {}
        return f"Please proceed to {counter.get('name', 'the counter')}"
    if status == "SERVED":
        return "Thank you for visiting"
    return "Ticket cancelled"
