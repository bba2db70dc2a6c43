"""Route modules exposed by the API package."""

from . import auth, counters, display, kiosk, metrics, ping, reports, staff, system, tickets

__all__ = ["auth", "counters", "display", "kiosk", "metrics", "ping", "reports", "staff", "system", "tickets"]
