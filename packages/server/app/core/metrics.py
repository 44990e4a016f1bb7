"""
In-process counters with Prometheus text exposition.

Tracks notification writes, fan-out outcomes and push deliveries. Counters
may carry labels; ``get`` without labels sums every series of a name.
"""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Any

PREFIX = "notifyhub_"

HELP = {
    "notifications_created_total": "Notification records written",
    "fanout_failures_total": "Recipients a fan-out failed to notify",
    "pushes_sent_total": "Push frames written to WebSocket connections",
    "ws_connections_active": "Open WebSocket connections in this process",
}

Labels = tuple[tuple[str, str], ...]


def _series(name: str, labels: Labels) -> str:
    if not labels:
        return f"{PREFIX}{name}"
    rendered = ",".join(f'{key}="{value}"' for key, value in labels)
    return f"{PREFIX}{name}{{{rendered}}}"


class MetricsCollector:
    """Counters and gauges keyed by metric name and label set."""

    def __init__(self) -> None:
        self._counters: dict[str, dict[Labels, int]] = defaultdict(lambda: defaultdict(int))
        self._gauges: dict[str, float] = {}
        self._start_time = time.time()

    def inc(self, name: str, value: int = 1, **labels: str) -> None:
        self._counters[name][tuple(sorted(labels.items()))] += value

    def set_gauge(self, name: str, value: float) -> None:
        self._gauges[name] = value

    def get(self, name: str, **labels: str) -> int | float:
        if name in self._gauges:
            return self._gauges[name]
        series = self._counters.get(name, {})
        if labels:
            return series.get(tuple(sorted(labels.items())), 0)
        return sum(series.values())

    def reset(self) -> None:
        self._counters.clear()
        self._gauges.clear()

    def to_prometheus(self) -> str:
        lines = []
        for name in sorted(self._counters):
            if name in HELP:
                lines.append(f"# HELP {PREFIX}{name} {HELP[name]}")
            lines.append(f"# TYPE {PREFIX}{name} counter")
            for labels, value in sorted(self._counters[name].items()):
                lines.append(f"{_series(name, labels)} {value}")
        for name, value in sorted(self._gauges.items()):
            if name in HELP:
                lines.append(f"# HELP {PREFIX}{name} {HELP[name]}")
            lines.append(f"# TYPE {PREFIX}{name} gauge")
            lines.append(f"{PREFIX}{name} {value}")
        lines.append(f"# TYPE {PREFIX}uptime_seconds gauge")
        lines.append(f"{PREFIX}uptime_seconds {time.time() - self._start_time:.1f}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, Any]:
        return {
            "counters": {
                _series(name, labels): value
                for name, series in self._counters.items()
                for labels, value in series.items()
            },
            "gauges": {f"{PREFIX}{name}": value for name, value in self._gauges.items()},
            "uptime_seconds": time.time() - self._start_time,
        }


metrics = MetricsCollector()
