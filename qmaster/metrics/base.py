"""Counter and summary primitives kept per label set."""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable, Mapping, Tuple

LabelValues = Tuple[str, ...]


class Metric:
    """Named metric whose samples are keyed by label values."""

    kind = "untyped"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        self.name = name
        self.description = description
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._lock = Lock()

    def label_key(self, labels: Mapping[str, str] | None = None) -> LabelValues:
        """Order ``labels`` by the declared label names, rejecting mismatches."""

        labels = dict(labels or {})
        if set(labels) != set(self.label_names):
            raise ValueError(
                f"Metric '{self.name}' expects labels {self.label_names}, got {tuple(sorted(labels))}"
            )
        return tuple(str(labels[name]) for name in self.label_names)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        raise NotImplementedError


class CounterMetric(Metric):
    """Monotonic total, such as tickets issued per channel."""

    kind = "counter"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._totals: Dict[LabelValues, float] = {}

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = self.label_key(labels)
        with self._lock:
            self._totals[key] = self._totals.get(key, 0.0) + amount

    def value(self, labels: Mapping[str, str] | None = None) -> float:
        key = self.label_key(labels)
        with self._lock:
            return self._totals.get(key, 0.0)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: {"value": total} for key, total in self._totals.items()}


@dataclass(slots=True)
class DistributionStats:
    """Running count, sum and extremes of observed durations."""

    count: int = 0
    total: float = 0.0
    min: float | None = None
    max: float | None = None

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.min = value if self.min is None else min(self.min, value)
        self.max = value if self.max is None else max(self.max, value)

    def to_mapping(self) -> Mapping[str, float]:
        return {
            "count": float(self.count),
            "sum": self.total,
            "min": self.min or 0.0,
            "max": self.max or 0.0,
            "avg": self.total / self.count if self.count else 0.0,
        }


class DistributionMetric(Metric):
    """Summary of observed values such as wait and service seconds."""

    kind = "summary"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._stats: Dict[LabelValues, DistributionStats] = {}

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        if value < 0:
            raise ValueError("Observed durations cannot be negative")
        key = self.label_key(labels)
        with self._lock:
            self._stats.setdefault(key, DistributionStats()).observe(value)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: stats.to_mapping() for key, stats in self._stats.items()}
