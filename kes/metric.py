"""Server metric snapshots."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

_UINT64_MAX = (1 << 64) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_INT_KEY = re.compile(r"[+-]?[0-9]+")


@dataclass
class Metric:
    """A snapshot of server metrics.

    Durations (the latency histogram buckets and ``up_time``) are in
    nanoseconds. Each histogram bucket counts the responses that took
    the bucket's duration or less.
    """

    request_ok: int = 0
    request_err: int = 0
    request_fail: int = 0
    request_active: int = 0
    audit_events: int = 0
    error_events: int = 0
    latency_histogram: dict[int, int] = field(default_factory=dict)
    up_time: int = 0

    def request_count(self) -> int:
        """Return the total number of received requests."""
        return self.request_ok + self.request_err + self.request_fail


_COUNTERS = {
    "kes_http_request_success": "request_ok",
    "kes_http_request_error": "request_err",
    "kes_http_request_failure": "request_fail",
    "kes_http_request_active": "request_active",
    "kes_log_audit_events": "audit_events",
    "kes_log_error_events": "error_events",
}
_HISTOGRAM = "kes_http_response_time"
_UP_TIME = "kes_system_up_time"


def _integer(value: Any, name: str, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ValueError(f"invalid value for {name}: {value!r}")
    return value


def _histogram(value: Any) -> dict[int, int]:
    if not isinstance(value, dict):
        raise ValueError(f"invalid value for {_HISTOGRAM}: {value!r}")
    buckets = {}
    for key, count in value.items():
        if not _INT_KEY.fullmatch(key):
            raise ValueError(f"invalid latency bucket {key!r}")
        bucket = _integer(int(key), _HISTOGRAM, _INT64_MIN, _INT64_MAX)
        buckets[bucket] = _integer(count, _HISTOGRAM, 0, _UINT64_MAX)
    return buckets


def parse_metric(data: str | bytes) -> Metric:
    """Parse a metric snapshot from its JSON form.

    Unknown fields are ignored and missing ones stay zero.
    """
    value = json.loads(data)
    metric = Metric()
    if value is None:
        return metric
    if not isinstance(value, dict):
        raise ValueError("metric must be a JSON object")

    for key, item in value.items():
        folded = key.casefold()
        if item is None:
            continue
        if folded in _COUNTERS:
            setattr(metric, _COUNTERS[folded], _integer(item, folded, 0, _UINT64_MAX))
        elif folded == _HISTOGRAM:
            metric.latency_histogram = _histogram(item)
        elif folded == _UP_TIME:
            metric.up_time = _integer(item, folded, _INT64_MIN, _INT64_MAX)
    return metric