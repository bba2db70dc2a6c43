"""Queue metrics and their Prometheus rendering."""
from .definitions import DEFAULT_METRIC_DEFINITIONS, MetricDefinition
from .exporters import PrometheusExporter
from .registry import MetricsRegistry


def register_default_metrics(registry: MetricsRegistry) -> MetricsRegistry:
    """Make sure every queue metric exists, so ``/metrics`` lists them from the start."""
    for definition in DEFAULT_METRIC_DEFINITIONS:
        registry.register(definition)
    return registry


__all__ = [
    "MetricDefinition",
    "MetricsRegistry",
    "PrometheusExporter",
    "register_default_metrics",
]
