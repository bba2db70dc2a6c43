"""Prometheus text exposition of the queue metrics."""
from __future__ import annotations

import logging
from typing import Iterator, Mapping

from .base import Metric
from .registry import MetricsRegistry

logger = logging.getLogger(__name__)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _label_text(metric: Metric, labels: tuple[str, ...]) -> str:
    if not labels:
        return ""
    pairs = ",".join(f'{name}="{_escape(value)}"' for name, value in zip(metric.label_names, labels))
    return "{" + pairs + "}"


def _sample_lines(metric: Metric, labels: str, values: Mapping[str, float]) -> Iterator[str]:
    if metric.kind == "counter":
        yield f"{metric.name}{labels} {values['value']}"
    else:
        yield f"{metric.name}_count{labels} {values['count']}"
        yield f"{metric.name}_sum{labels} {values['sum']}"


class PrometheusExporter:
    """Render a registry in the Prometheus text format."""

    def __init__(self, registry: MetricsRegistry) -> None:
        self.registry = registry

    def build_payload(self) -> str:
        lines: list[str] = []
        for metric in self.registry.metrics():
            lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            for labels, values in metric.snapshot().items():
                lines.extend(_sample_lines(metric, _label_text(metric, labels), values))
        return "\n".join(lines) + "\n"

    def export(self) -> str:
        payload = self.build_payload()
        logger.debug("Rendered %d metrics", len(self.registry.metrics()))
        return payload
