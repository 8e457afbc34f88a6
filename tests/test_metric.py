import json

import pytest

from kes.metric import Metric, parse_metric


def _sample():
    return {
        "kes_http_request_success": 11,
        "kes_http_request_error": 7,
        "kes_http_request_failure": 3,
        "kes_http_request_active": 2,
        "kes_log_audit_events": 21,
        "kes_log_error_events": 4,
        "kes_http_response_time": {"10000000": 100, "50000000": 115},
        "kes_system_up_time": 3600000000000,
    }


def test_parse_fields():
    metric = parse_metric(json.dumps(_sample()))
    assert metric.request_ok == 11
    assert metric.request_err == 7
    assert metric.request_fail == 3
    assert metric.request_active == 2
    assert metric.audit_events == 21
    assert metric.error_events == 4
    assert metric.latency_histogram == {10000000: 100, 50000000: 115}
    assert metric.up_time == 3600000000000


def test_request_count_sums_completed_requests():
    metric = parse_metric(json.dumps(_sample()))
    expected = metric.request_ok + metric.request_err + metric.request_fail
    assert metric.request_count() == expected


def test_request_count_excludes_active():
    base = Metric(request_ok=1, request_err=1, request_fail=1)
    busy = Metric(request_ok=1, request_err=1, request_fail=1, request_active=50)
    assert base.request_count() == busy.request_count()


def test_empty_object_is_zero_metric():
    assert parse_metric("{}") == Metric()
    assert parse_metric("null") == Metric()
    assert Metric().request_count() == 0


def test_unknown_fields_are_ignored():
    metric = parse_metric(b'{"kes_http_request_success": 5, "other": [1, 2]}')
    assert metric == Metric(request_ok=5)


def test_keys_match_case_insensitively():
    assert parse_metric('{"KES_LOG_AUDIT_EVENTS": 9}').audit_events == 9


@pytest.mark.parametrize(
    "source",
    [
        '{"kes_http_request_success": -1}',
        '{"kes_http_request_success": 1.5}',
        '{"kes_http_request_success": "1"}',
        '{"kes_http_request_success": true}',
        '{"kes_http_response_time": {"abc": 1}}',
        '{"kes_http_response_time": {"10": -1}}',
        '{"kes_http_response_time": []}',
        '{"kes_system_up_time": "1h"}',
        "[]",
        "{",
    ],
)
def test_invalid_metric(source):
    with pytest.raises(ValueError):
        parse_metric(source)