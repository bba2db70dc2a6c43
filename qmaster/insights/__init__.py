"""Analytics reports and spoken announcements."""

from .announcements import announcement_text, pcm_to_wav, voice_name
from .gemini import REPORT_FALLBACK, GeminiClient
from .reports import (
    ReportRange,
    ReportStatistics,
    TicketSummary,
    build_report_prompt,
    compute_report_statistics,
    summarize_tickets,
    tickets_in_range,
)

__all__ = [
    "GeminiClient",
    "REPORT_FALLBACK",
    "ReportRange",
    "ReportStatistics",
    "TicketSummary",
    "announcement_text",
    "build_report_prompt",
    "compute_report_statistics",
    "pcm_to_wav",
    "summarize_tickets",
    "tickets_in_range",
    "voice_name",
]
