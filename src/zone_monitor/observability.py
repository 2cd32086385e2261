"""Prometheus metrics and observability helpers for the zone monitor."""
from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from .config import get_settings

_SETTINGS = get_settings()
_ENABLED = _SETTINGS.metrics_enabled

_REFRESH_DURATION = Histogram(
    "monitor_refresh_duration_seconds",
    "Duration of a fetch-and-apply refresh cycle.",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)
_REFRESH_RECORDS = Gauge(
    "monitor_snapshot_records",
    "Number of trade records in the currently applied snapshot.",
)
_REFRESH_FAILURES = Counter(
    "monitor_refresh_failures_total",
    "Total number of refresh failures by kind.",
    ["kind"],
)
_REFRESH_DISCARDED = Counter(
    "monitor_refresh_discarded_total",
    "Responses dropped because a newer sequence was already applied.",
)
_LAST_SUCCESS = Gauge(
    "monitor_last_success_timestamp_seconds",
    "Unix time of the last applied snapshot.",
)


def record_refresh(duration: float, records: int, applied_at: float) -> None:
    if not _ENABLED:
        return
    _REFRESH_DURATION.observe(max(duration, 0.0))
    _REFRESH_RECORDS.set(records)
    _LAST_SUCCESS.set(applied_at)


def record_refresh_failure(kind: str) -> None:
    if not _ENABLED:
        return
    _REFRESH_FAILURES.labels(kind=kind).inc()


def record_discarded() -> None:
    if not _ENABLED:
        return
    _REFRESH_DISCARDED.inc()
