# app/infra/metrics.py
"""
In-process counters and timing histograms.

Everything lives in one ``MetricsCollector``; ``/metrics`` dumps it as JSON.
"""
from __future__ import annotations
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Dict, Deque
from dataclasses import dataclass, field
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

# Histograms keep only the most recent samples
HISTOGRAM_WINDOW = 1000


@dataclass
class Counter:
    """Monotonic counter"""
    value: int = 0

    def inc(self, amount: int = 1) -> None:
        self.value += amount


@dataclass
class Histogram:
    """Rolling window of observed values (e.g., processing seconds)"""
    values: Deque[float] = field(default_factory=lambda: deque(maxlen=HISTOGRAM_WINDOW))
    total_count: int = 0

    def observe(self, value: float) -> None:
        self.values.append(value)
        self.total_count += 1

    def get_stats(self) -> dict:
        if not self.values:
            return {"count": 0, "min": 0, "max": 0, "avg": 0, "p50": 0, "p95": 0}

        ordered = sorted(self.values)
        n = len(ordered)

        def percentile(p: float) -> float:
            return ordered[min(int(n * p), n - 1)]

        return {
            "count": self.total_count,
            "min": ordered[0],
            "max": ordered[-1],
            "avg": sum(ordered) / n,
            "p50": percentile(0.50),
            "p95": percentile(0.95),
        }


class MetricsCollector:
    """Thread-safe registry of counters and histograms keyed by name + labels."""

    def __init__(self):
        self._counters: Dict[str, Counter] = defaultdict(Counter)
        self._histograms: Dict[str, Histogram] = defaultdict(Histogram)
        self._lock = Lock()

    def inc_counter(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key].inc(amount)

    def observe_histogram(self, name: str, value: float, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            self._histograms[key].observe(value)

    def get_counter(self, name: str, **labels) -> int:
        """Current value of one counter (0 if never incremented)."""
        key = self._make_key(name, labels or None)
        with self._lock:
            counter = self._counters.get(key)
            return counter.value if counter else 0

    def get_metrics(self) -> dict:
        """Snapshot of all metrics"""
        with self._lock:
            counters = {k: v.value for k, v in self._counters.items()}
            histograms = {k: v.get_stats() for k, v in self._histograms.items()}
        return {"counters": counters, "histograms": histograms}

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
        logger.info("Metrics reset")

    @staticmethod
    def _make_key(name: str, labels: dict | None) -> str:
        """``name{k1=v1,k2=v2}`` with labels sorted by key"""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics


def inc_counter(name: str, amount: int = 1, **labels) -> None:
    _metrics.inc_counter(name, amount, labels or None)


def observe_histogram(name: str, value: float, **labels) -> None:
    _metrics.observe_histogram(name, value, labels or None)


class Timer:
    """Context manager recording elapsed seconds into a histogram"""

    def __init__(self, metric_name: str, **labels):
        self.metric_name = metric_name
        self.labels = labels
        self.start_time: float | None = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            observe_histogram(self.metric_name, time.perf_counter() - self.start_time, **self.labels)


class AppMetrics:
    """Onboarding-level metrics"""

    @staticmethod
    def message_received(kind: str) -> None:
        inc_counter("onboarding_messages_total", kind=kind)

    @staticmethod
    def step_completed(step: str) -> None:
        inc_counter("onboarding_steps_completed_total", step=step)

    @staticmethod
    def identity_created() -> None:
        inc_counter("identities_created_total")

    @staticmethod
    def identity_failed(reason: str) -> None:
        inc_counter("identity_failures_total", reason=reason)

    @staticmethod
    def upload_finished(ok: bool) -> None:
        inc_counter("profile_image_uploads_total", result="stored" if ok else "fallback")

    @staticmethod
    def signup_completed(listed: bool) -> None:
        inc_counter("signups_completed_total", listed=str(listed).lower())

    @staticmethod
    def unexpected_error(stage: str) -> None:
        inc_counter("unexpected_errors_total", stage=stage)

    @staticmethod
    def track_processing_time(kind: str) -> Timer:
        return Timer("message_processing_seconds", kind=kind)
