from __future__ import annotations

import io
import json
import wave
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from qmaster.insights import (
    ReportRange,
    TicketSummary,
    announcement_text,
    build_report_prompt,
    compute_report_statistics,
    pcm_to_wav,
    summarize_tickets,
    tickets_in_range,
    voice_name,
)
from qmaster.insights.announcements import build_tts_prompt
from qmaster.queue.models import Ticket, VoicePreference
from qmaster.queue.state import TicketStatus

NOW = datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc)


def _ticket(number, *, created, called=None, served=None, status=TicketStatus.WAITING):
    return Ticket(
        id=f"t{number}",
        number=number,
        status=status,
        created_at=created,
        called_at=called,
        served_at=served,
    )


def test_tickets_in_range_uses_window():
    tickets = [
        _ticket(101, created=NOW - timedelta(days=40)),
        _ticket(102, created=NOW - timedelta(days=20)),
        _ticket(103, created=NOW - timedelta(hours=1)),
    ]

    assert [t.number for t in tickets_in_range(tickets, ReportRange.WEEK, NOW)] == [103]
    assert [t.number for t in tickets_in_range(tickets, ReportRange.MONTH, NOW)] == [102, 103]
    assert len(tickets_in_range(tickets, ReportRange.YEAR, NOW)) == 3


def test_summarize_tickets_computes_durations_in_local_time():
    ticket = _ticket(
        101,
        created=NOW,
        called=NOW + timedelta(minutes=4),
        served=NOW + timedelta(minutes=10),
        status=TicketStatus.SERVED,
    )

    (row,) = summarize_tickets([ticket], ZoneInfo("Europe/Istanbul"))

    assert row.wait_minutes == 4
    assert row.service_minutes == 6
    assert row.hour_of_day == 15
    assert row.date == "2024-05-06"
    assert row.status == "SERVED"


def test_compute_report_statistics():
    rows = [
        TicketSummary(101, "SERVED", 4.0, 6.0, 9, "2024-05-06"),
        TicketSummary(102, "SERVED", 2.0, 3.0, 10, "2024-05-06"),
        TicketSummary(103, "CANCELLED", None, None, 10, "2024-05-06"),
        TicketSummary(104, "WAITING", None, None, 9, "2024-05-06"),
    ]

    stats = compute_report_statistics(rows, ReportRange.WEEK)

    assert stats.total == 4
    assert stats.by_status == {"WAITING": 1, "CALLING": 0, "SERVED": 2, "CANCELLED": 1}
    assert stats.average_wait_minutes == 3.0
    assert stats.average_service_minutes == 4.5
    assert stats.peak_hour == 9


def test_empty_report_has_no_averages():
    stats = compute_report_statistics([], ReportRange.MONTH)

    assert stats.total == 0
    assert stats.average_wait_minutes is None
    assert stats.peak_hour is None


def test_report_prompt_embeds_data():
    rows = [TicketSummary(101, "SERVED", 4.0, 6.0, 9, "2024-05-06")]

    prompt = build_report_prompt(rows, ReportRange.MONTH)

    assert "for the period: MONTH" in prompt
    assert "monthly business report" in prompt
    data = json.loads(prompt.split("Data: ", 1)[1].split("\n", 1)[0])
    assert data == [
        {
            "number": 101,
            "status": "SERVED",
            "waitDuration": 4.0,
            "serviceDuration": 6.0,
            "hourOfDay": 9,
            "date": "2024-05-06",
        }
    ]


def test_announcement_text_and_voices():
    assert announcement_text(105, "Counter 2") == "Ticket number 105, please proceed to Counter 2."
    assert build_tts_prompt(105, "Counter 2").startswith("Announce clearly and professionally: ")
    assert voice_name(VoicePreference.WOMAN) == "Kore"
    assert voice_name(VoicePreference.MAN) == "Puck"
    assert voice_name(None) == "Puck"


def test_pcm_to_wav_wraps_frames():
    pcm = b"\x00\x01" * 240

    wav = pcm_to_wav(pcm)

    with wave.open(io.BytesIO(wav), "rb") as reader:
        assert reader.getframerate() == 24000
        assert reader.getnchannels() == 1
        assert reader.getsampwidth() == 2
        assert reader.getnframes() == 240

    with pytest.raises(ValueError):
        pcm_to_wav(b"\x00\x01\x02")
