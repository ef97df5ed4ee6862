import base64
import json

from kymaotel.pdata import (
    DataPoint,
    InstrumentationScope,
    LogRecord,
    Logs,
    Metric,
    Metrics,
    MetricType,
    ResourceLogs,
    ResourceMetrics,
    ResourceSpans,
    ScopeLogs,
    ScopeMetrics,
    ScopeSpans,
    SeverityNumber,
    Span,
    Traces,
    as_string,
)


def test_empty_batches_have_zero_counts():
    assert Logs().log_record_count() == 0
    assert Traces().span_count() == 0
    assert Metrics().data_point_count() == 0


def test_log_record_count_spans_resources_and_scopes():
    per_scope = [2, 1, 4]
    logs = Logs(
        resource_logs=[
            ResourceLogs(scope_logs=[ScopeLogs(log_records=[LogRecord() for _ in range(n)])])
            for n in per_scope
        ]
    )
    assert logs.log_record_count() == sum(per_scope)


def test_span_count_spans_resources_and_scopes():
    per_scope = [3, 0, 2]
    traces = Traces(
        resource_spans=[
            ResourceSpans(
                scope_spans=[ScopeSpans(spans=[Span(name=f"s{i}") for i in range(n)]) for n in per_scope]
            )
        ]
    )
    assert traces.span_count() == sum(per_scope)


def test_data_point_count_ignores_empty_metrics():
    typed = Metric(name="a", type=MetricType.GAUGE, data_points=[DataPoint(), DataPoint()])
    untyped = Metric(name="b", data_points=[DataPoint()])
    metrics = Metrics(
        resource_metrics=[ResourceMetrics(scope_metrics=[ScopeMetrics(metrics=[typed, untyped])])]
    )
    assert metrics.data_point_count() == len(typed.data_points)


def test_defaults_are_independent():
    first = LogRecord()
    second = LogRecord()
    first.attributes["k"] = "v"
    assert second.attributes == {}
    assert first.severity_number is SeverityNumber.UNSPECIFIED
    assert InstrumentationScope().name == ""


def test_as_string_passes_strings_through():
    assert as_string("client.local:456") == "client.local:456"


def test_as_string_none_is_empty():
    assert as_string(None) == ""


def test_as_string_bool():
    assert as_string(True) == "true"


def test_as_string_int_round_trip():
    assert int(as_string(12345)) == 12345


def test_as_string_float_round_trip():
    for value in (0.5, 1.25, -3.75, 1e-7, 2.5e22):
        assert float(as_string(value)) == value


def test_as_string_integral_float_has_no_fraction():
    assert "." not in as_string(8.0)
    assert float(as_string(8.0)) == 8.0


def test_as_string_bytes_round_trip():
    data = b"\x00\x01abc"
    assert base64.b64decode(as_string(data)) == data


def test_as_string_map_round_trip():
    value = {"b": [1, "x"], "a": {"c": True}}
    assert json.loads(as_string(value)) == value