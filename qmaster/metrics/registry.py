"""In-process registry shared by the queue service and the ``/metrics`` route."""
from __future__ import annotations

from threading import Lock
from typing import Dict, Iterable, Mapping, Tuple, Type, TypeVar

from .base import CounterMetric, DistributionMetric, Metric
from .definitions import MetricDefinition

M = TypeVar("M", bound=Metric)

_KINDS: Dict[str, Type[Metric]] = {
    "counter": CounterMetric,
    "distribution": DistributionMetric,
}


class MetricsRegistry:
    """Holds one metric instance per name."""

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}
        self._lock = Lock()

    def _get(self, cls: Type[M], name: str, description: str, label_names: Iterable[str] | None) -> M:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = cls(name, description=description, label_names=label_names)
        if not isinstance(metric, cls):
            raise TypeError(f"Metric '{name}' already exists as a {metric.kind}")
        return metric

    def counter(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> CounterMetric:
        return self._get(CounterMetric, name, description, label_names)

    def distribution(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> DistributionMetric:
        return self._get(DistributionMetric, name, description, label_names)

    def register(self, definition: MetricDefinition) -> Metric:
        try:
            cls = _KINDS[definition.metric_type]
        except KeyError:
            raise ValueError(f"Unsupported metric type: {definition.metric_type}") from None
        return self._get(cls, definition.name, definition.description, definition.label_names)

    def metrics(self) -> Tuple[Metric, ...]:
        with self._lock:
            return tuple(self._metrics.values())

    def snapshot(self) -> Dict[str, Mapping[Tuple[str, ...], Mapping[str, float]]]:
        return {metric.name: metric.snapshot() for metric in self.metrics()}
