# app/infra/metrics.py
"""
In-process metrics for transitions and notification delivery.

Counters and histograms are keyed by ``name{label=value,...}`` with labels
sorted, so the same label set always maps to the same series.  Exposed as
JSON on ``GET /metrics``.
"""
from __future__ import annotations
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Deque, Dict

from app.infra.logging_config import get_logger

logger = get_logger(__name__)

# Histograms keep a sliding window; older samples fall off
HISTOGRAM_WINDOW = 1000


def series_key(name: str, labels: dict | None = None) -> str:
    if not labels:
        return name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{rendered}}}"


def summarize(samples: Deque[float]) -> dict:
    if not samples:
        return {"count": 0, "min": 0, "max": 0, "avg": 0, "p95": 0, "p99": 0}

    ordered = sorted(samples)
    n = len(ordered)

    def pct(p: float) -> float:
        return ordered[min(int(n * p), n - 1)]

    return {
        "count": n,
        "min": ordered[0],
        "max": ordered[-1],
        "avg": sum(ordered) / n,
        "p95": pct(0.95),
        "p99": pct(0.99),
    }


class MetricsCollector:
    """Thread-safe counters and windowed histograms."""

    def __init__(self, window: int = HISTOGRAM_WINDOW):
        self._counters: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=window))
        self._lock = Lock()

    def inc_counter(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = series_key(name, labels)
        with self._lock:
            self._counters[key] += amount

    def observe_histogram(self, name: str, value: float, labels: dict | None = None) -> None:
        key = series_key(name, labels)
        with self._lock:
            self._histograms[key].append(value)

    def get_metrics(self) -> dict:
        with self._lock:
            counters = dict(self._counters)
            samples = {k: deque(v) for k, v in self._histograms.items()}

        return {
            "counters": counters,
            "histograms": {k: summarize(v) for k, v in samples.items()},
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
        logger.info("Metrics reset")


_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector"""
    return _metrics


class Timer:
    """Context manager recording elapsed seconds into a histogram, even on error."""

    def __init__(self, metric_name: str, **labels):
        self.metric_name = metric_name
        self.labels = labels
        self._started: float | None = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._started is not None:
            _metrics.observe_histogram(
                self.metric_name, time.perf_counter() - self._started, self.labels or None
            )


class AppMetrics:
    """Named series for the lost/found flow"""

    @staticmethod
    def status_transition(target: str, changed: bool) -> None:
        _metrics.inc_counter(
            "status_transitions_total", labels={"target": target, "changed": str(changed).lower()}
        )

    @staticmethod
    def transition_rejected(reason: str) -> None:
        _metrics.inc_counter("status_transitions_rejected_total", labels={"reason": reason})

    @staticmethod
    def report_received(kind: str) -> None:
        _metrics.inc_counter("third_party_reports_total", labels={"kind": kind})

    @staticmethod
    def dispatch_finished(kind: str, status: str) -> None:
        """status: ok | partial | error"""
        _metrics.inc_counter("notification_dispatches_total", labels={"kind": kind, "status": status})

    @staticmethod
    def notification_sent(channel: str, role: str) -> None:
        _metrics.inc_counter("notifications_sent_total", labels={"channel": channel, "role": role})

    @staticmethod
    def notification_skipped(channel: str, role: str) -> None:
        _metrics.inc_counter("notifications_skipped_total", labels={"channel": channel, "role": role})

    @staticmethod
    def notification_failed(channel: str, role: str) -> None:
        _metrics.inc_counter("notifications_failed_total", labels={"channel": channel, "role": role})

    @staticmethod
    def track_send_time(channel: str) -> Timer:
        return Timer("notification_send_seconds", channel=channel)
