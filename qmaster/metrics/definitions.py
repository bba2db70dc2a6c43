"""Metric definitions used across the application."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


TICKETS_ISSUED = "qmaster_tickets_issued_total"
TICKETS_CALLED = "qmaster_tickets_called_total"
TICKETS_SERVED = "qmaster_tickets_served_total"
TICKETS_CANCELLED = "qmaster_tickets_cancelled_total"
SCANS_REJECTED = "qmaster_scans_rejected_total"
WAIT_SECONDS = "qmaster_ticket_wait_seconds"
SERVICE_SECONDS = "qmaster_ticket_service_seconds"

DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=TICKETS_ISSUED,
        metric_type="counter",
        description="Tickets issued at the kiosk or through a digital pass.",
        label_names=("channel",),
    ),
    MetricDefinition(
        name=TICKETS_CALLED,
        metric_type="counter",
        description="Tickets called to a counter.",
        label_names=("counter",),
    ),
    MetricDefinition(
        name=TICKETS_SERVED,
        metric_type="counter",
        description="Tickets marked as served.",
        label_names=("counter",),
    ),
    MetricDefinition(
        name=TICKETS_CANCELLED,
        metric_type="counter",
        description="Tickets skipped at a counter or abandoned by the customer.",
    ),
    MetricDefinition(
        name=SCANS_REJECTED,
        metric_type="counter",
        description="Counter scans that matched no waiting ticket.",
    ),
    MetricDefinition(
        name=WAIT_SECONDS,
        metric_type="distribution",
        description="Seconds between check-in and being called.",
    ),
    MetricDefinition(
        name=SERVICE_SECONDS,
        metric_type="distribution",
        description="Seconds between being called and being served.",
    ),
)
