"""In-process metrics: counters, gauges and histograms keyed by labels."""

from __future__ import annotations

import math
from collections import deque
from enum import StrEnum
from typing import NamedTuple, Optional


class MetricName(StrEnum):
    EP_API_CALL_COUNT = "ep_api_call_count"
    EP_API_ERROR_COUNT = "ep_api_error_count"
    EP_API_REQUEST_DURATION = "ep_api_request_duration_ms"
    EP_CACHE_HIT_COUNT = "ep_cache_hit_count"
    EP_CACHE_MISS_COUNT = "ep_cache_miss_count"
    RATE_LIMIT_REJECTIONS = "rate_limit_rejections"
    TOOL_CALL_COUNT = "tool_call_count"
    TOOL_ERROR_COUNT = "tool_error_count"


class HistogramSummary(NamedTuple):
    count: int
    sum: float
    avg: float
    p50: float
    p95: float
    p99: float


class MetricsService:
    """Collects runtime metrics for health checks and diagnostics.

    Histograms keep the most recent *histogram_size* observations in a
    ring buffer.
    """

    def __init__(self, histogram_size: int = 1000) -> None:
        self.histogram_size = histogram_size
        self._counters: dict[str, float] = {}
        self._gauges: dict[str, float] = {}
        self._histograms: dict[str, deque[float]] = {}

    # ── Recording ────────────────────────────────────────

    def increment_counter(
        self, name: str, value: float = 1, labels: Optional[dict[str, str]] = None
    ) -> None:
        key = self._key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def set_gauge(
        self, name: str, value: float, labels: Optional[dict[str, str]] = None
    ) -> None:
        self._gauges[self._key(name, labels)] = value

    def observe_histogram(
        self, name: str, value: float, labels: Optional[dict[str, str]] = None
    ) -> None:
        key = self._key(name, labels)
        buf = self._histograms.get(key)
        if buf is None:
            buf = self._histograms[key] = deque(maxlen=self.histogram_size)
        buf.append(value)

    # ── Reading ──────────────────────────────────────────

    def get_metric(
        self, name: str, labels: Optional[dict[str, str]] = None
    ) -> Optional[float]:
        """Latest value of a counter or gauge (or last histogram sample)."""
        key = self._key(name, labels)
        if key in self._counters:
            return self._counters[key]
        if key in self._gauges:
            return self._gauges[key]
        buf = self._histograms.get(key)
        if buf:
            return buf[-1]
        return None

    def get_histogram_summary(
        self, name: str, labels: Optional[dict[str, str]] = None
    ) -> Optional[HistogramSummary]:
        buf = self._histograms.get(self._key(name, labels))
        if not buf:
            return None
        ordered = sorted(buf)
        total = sum(ordered)
        return HistogramSummary(
            count=len(ordered),
            sum=total,
            avg=total / len(ordered),
            p50=self._percentile(ordered, 50),
            p95=self._percentile(ordered, 95),
            p99=self._percentile(ordered, 99),
        )

    def snapshot(self) -> dict[str, float]:
        data: dict[str, float] = {**self._counters, **self._gauges}
        for key in self._histograms:
            summary = self.get_histogram_summary(key)
            if summary is not None:
                data[f"{key}_p95"] = summary.p95
        return data

    def clear(self) -> None:
        self._counters.clear()
        self._gauges.clear()
        self._histograms.clear()

    # ── Helpers ───────────────────────────────────────────

    @staticmethod
    def _key(name: str, labels: Optional[dict[str, str]]) -> str:
        if not labels:
            return str(name)
        label_str = ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    @staticmethod
    def _percentile(ordered: list[float], p: float) -> float:
        """Nearest-rank percentile of an already sorted list."""
        index = math.ceil(p / 100 * len(ordered)) - 1
        return ordered[max(0, index)]
