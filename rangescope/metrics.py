"""In-process metrics with Prometheus text and JSON export.

Tracked series:
- HTTP requests (count and latency)
- Topology store operations (count by outcome, latency)
- Visibility queries per team role
- Authorization denials
"""

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

DEFAULT_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)


@dataclass
class Histogram:
    """Cumulative-bucket latency histogram."""

    buckets: tuple[float, ...] = DEFAULT_BUCKETS
    counts: dict[float, int] = field(default_factory=lambda: defaultdict(int))
    sum: float = 0.0
    count: int = 0

    def observe(self, value: float) -> None:
        self.sum += value
        self.count += 1
        for bound in self.buckets:
            if value <= bound:
                self.counts[bound] += 1

    def to_prometheus(self, name: str, labels: str = "") -> str:
        extra = f", {labels}" if labels else ""
        suffix = f"{{{labels}}}" if labels else ""
        lines = [f'{name}_bucket{{le="{bound}"{extra}}} {self.counts[bound]}' for bound in self.buckets]
        lines.append(f'{name}_bucket{{le="+Inf"{extra}}} {self.count}')
        lines.append(f"{name}_sum{suffix} {self.sum}")
        lines.append(f"{name}_count{suffix} {self.count}")
        return "\n".join(lines)


class MetricsRegistry:
    """Counters and histograms keyed by metric name and label set."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._histograms: dict[str, dict[str, Histogram]] = defaultdict(dict)

    @staticmethod
    def _label_key(labels: dict[str, str] | None) -> str:
        if not labels:
            return ""
        return ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))

    def inc_counter(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        key = self._label_key(labels)
        with self._lock:
            self._counters[name][key] += value

    def observe_histogram(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        key = self._label_key(labels)
        with self._lock:
            histogram = self._histograms[name].setdefault(key, Histogram())
            histogram.observe(value)

    def counter_value(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(name, {}).get(self._label_key(labels), 0)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()

    def to_prometheus(self) -> str:
        """Render every series in the Prometheus text exposition format."""
        lines: list[str] = []
        with self._lock:
            for name, series in self._counters.items():
                lines.append(f"# TYPE {name} counter")
                for key, value in series.items():
                    lines.append(f"{name}{{{key}}} {value}" if key else f"{name} {value}")
                lines.append("")
            for name, series in self._histograms.items():
                lines.append(f"# TYPE {name} histogram")
                for key, histogram in series.items():
                    lines.append(histogram.to_prometheus(name, key))
                lines.append("")
        return "\n".join(lines)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": {name: dict(series) for name, series in self._counters.items()},
                "histograms": {
                    name: {key: {"count": h.count, "sum": h.sum} for key, h in series.items()}
                    for name, series in self._histograms.items()
                },
            }


metrics = MetricsRegistry()


def record_request(method: str, path: str, status_code: int, duration: float) -> None:
    labels = {"method": method, "path": path, "status": str(status_code)}
    metrics.inc_counter("rangescope_http_requests_total", labels)
    metrics.observe_histogram("rangescope_http_request_duration_seconds", duration, labels)


def record_store_operation(operation: str, outcome: str, duration: float) -> None:
    """Record a topology store load/save and how it ended (ok, invalid, timeout, error)."""
    metrics.inc_counter("rangescope_store_operations_total", {"operation": operation, "outcome": outcome})
    metrics.observe_histogram("rangescope_store_duration_seconds", duration, {"operation": operation})


def record_visibility_query(role: str, kind: str) -> None:
    metrics.inc_counter("rangescope_visibility_queries_total", {"role": role, "kind": kind})


def record_access_denied(operation: str) -> None:
    metrics.inc_counter("rangescope_access_denied_total", {"operation": operation})
