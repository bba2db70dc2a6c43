"""Ticket summaries feeding the analytics report."""

from __future__ import annotations

import json
from collections import Counter as Tally
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Sequence

from qmaster.queue.models import Ticket
from qmaster.queue.state import TicketStatus


class ReportRange(str, Enum):
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"

    @property
    def window(self) -> timedelta:
        return {
            ReportRange.WEEK: timedelta(days=7),
            ReportRange.MONTH: timedelta(days=30),
            ReportRange.YEAR: timedelta(days=365),
        }[self]


@dataclass(frozen=True, slots=True)
class TicketSummary:
    number: int
    status: str
    wait_minutes: float | None
    service_minutes: float | None
    hour_of_day: int
    date: str


@dataclass(slots=True)
class ReportStatistics:
    range: ReportRange
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    average_wait_minutes: float | None = None
    average_service_minutes: float | None = None
    peak_hour: int | None = None


def _minutes(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 60


def tickets_in_range(tickets: Iterable[Ticket], report_range: ReportRange, now: datetime) -> list[Ticket]:
    since = now - report_range.window
    return [t for t in tickets if t.created_at >= since]


def summarize_tickets(tickets: Iterable[Ticket], tz: tzinfo) -> list[TicketSummary]:
    rows: list[TicketSummary] = []
    for ticket in tickets:
        local_created = ticket.created_at.astimezone(tz)
        rows.append(
            TicketSummary(
                number=ticket.number,
                status=ticket.status.value,
                wait_minutes=_minutes(ticket.created_at, ticket.called_at),
                service_minutes=_minutes(ticket.called_at, ticket.served_at),
                hour_of_day=local_created.hour,
                date=local_created.date().isoformat(),
            )
        )
    return rows


def _average(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def compute_report_statistics(rows: Sequence[TicketSummary], report_range: ReportRange) -> ReportStatistics:
    stats = ReportStatistics(range=report_range, total=len(rows))
    stats.by_status = {status.value: 0 for status in TicketStatus}
    for row in rows:
        stats.by_status[row.status] = stats.by_status.get(row.status, 0) + 1

    stats.average_wait_minutes = _average([r.wait_minutes for r in rows if r.wait_minutes is not None])
    stats.average_service_minutes = _average(
        [r.service_minutes for r in rows if r.service_minutes is not None]
    )

    hours = Tally(r.hour_of_day for r in rows)
    if hours:
        # ties resolve to the earliest hour
        stats.peak_hour = min(hours, key=lambda hour: (-hours[hour], hour))
    return stats


def build_report_prompt(rows: Sequence[TicketSummary], report_range: ReportRange) -> str:
    data = json.dumps(
        [
            {
                "number": r.number,
                "status": r.status,
                "waitDuration": r.wait_minutes,
                "serviceDuration": r.service_minutes,
                "hourOfDay": r.hour_of_day,
                "date": r.date,
            }
            for r in rows
        ]
    )
    period = report_range.value.lower()
    return (
        f"Analyze the following queue management data for the period: {report_range.value}.\n"
        "Identify peak hours, average wait times, average service times, and suggest improvements.\n"
        f"Data: {data}\n\n"
        f"Provide the response in a structured format suitable for a professional {period}ly business report."
    )


