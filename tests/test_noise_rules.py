import pytest

from kymaotel.noise_rules import (
    should_drop_log_record,
    should_drop_metric_data_point,
    should_drop_span,
)
from kymaotel.pdata import LogRecord, Span


def _log(**attrs):
    return LogRecord(attributes=dict(attrs))


def _span(attrs):
    return Span(attributes=dict(attrs))


def test_log_without_istio_module_is_kept_even_if_gateway_host():
    record = LogRecord(
        attributes={"kyma.module": "other", "server.address": "telemetry-otlp-logs.kyma-system.svc:4317"}
    )
    assert should_drop_log_record(record, {}) is False


def test_log_module_attribute_must_be_string():
    record = LogRecord(attributes={"kyma.module": 1, "server.address": "telemetry-otlp-logs.kyma-system"})
    assert should_drop_log_record(record, {}) is False


@pytest.mark.parametrize(
    "address, dropped",
    [
        ("telemetry-otlp-logs.kyma-system.svc:4317", True),
        ("telemetry-otlp-traces.kyma-system", True),
        ("telemetry-otlp-events.kyma-system.svc:4317", False),
        ("my-telemetry-otlp-logs.kyma-system", False),
    ],
)
def test_log_gateway_host(address, dropped):
    record = LogRecord(attributes={"kyma.module": "istio", "server.address": address})
    assert should_drop_log_record(record, {}) is dropped


def test_log_from_telemetry_component_outside_kyma_system_is_kept():
    record = LogRecord(attributes={"kyma.module": "istio"})
    resource = {"k8s.namespace.name": "default", "k8s.deployment.name": "telemetry-log-gateway"}
    assert should_drop_log_record(record, resource) is False


def test_log_agent_as_deployment_is_kept():
    record = LogRecord(attributes={"kyma.module": "istio"})
    resource = {"k8s.namespace.name": "kyma-system", "k8s.deployment.name": "telemetry-log-agent"}
    assert should_drop_log_record(record, resource) is False


def test_metric_scrape_log_requires_inbound_get():
    base = {
        "kyma.module": "istio",
        "http.request.method": "GET",
        "http.direction": "inbound",
        "user_agent.original": "vm_promscrape",
    }
    assert should_drop_log_record(LogRecord(attributes=dict(base)), {}) is True
    assert should_drop_log_record(LogRecord(attributes={**base, "http.direction": "outbound"}), {}) is False
    assert should_drop_log_record(LogRecord(attributes={**base, "http.request.method": "POST"}), {}) is False


def test_healthz_log_requires_outbound():
    attrs = {
        "kyma.module": "istio",
        "http.request.method": "GET",
        "http.direction": "inbound",
        "server.address": "healthz.foo.bar",
        "url.path": "/healthz/ready",
    }
    assert should_drop_log_record(LogRecord(attributes=attrs), {}) is False


def test_span_not_proxy_is_kept():
    span = Span(attributes={"component": "gateway", "istio.canonical_service": "telemetry-fluent-bit"})
    assert should_drop_span(span, {"k8s.namespace.name": "kyma-system"}) is False


def test_span_component_must_be_string():
    span = Span(attributes={"component": 7, "istio.canonical_service": "telemetry-fluent-bit"})
    assert should_drop_span(span, {"k8s.namespace.name": "kyma-system"}) is False


def test_span_from_telemetry_agent_in_kyma_system_is_dropped():
    span = Span(attributes={"component": "proxy", "istio.canonical_service": "telemetry-metric-agent"})
    assert should_drop_span(span, {"k8s.namespace.name": "kyma-system"}) is True
    assert should_drop_span(span, {"k8s.namespace.name": "default"}) is False


@pytest.mark.parametrize(
    "url, cluster, dropped",
    [
        ("http://telemetry-otlp-traces.kyma-system:4318/v1/traces", "outbound|4318||x", True),
        ("https://telemetry-otlp-logs.kyma-system.svc.cluster.local:4317", "outbound|4317||x", True),
        ("https://telemetry-otlp-logs.kyma-system.svc:9090/v1/logs", "outbound|9090||x", False),
        ("https://telemetry-otlp-logs.kyma-system.svc:4317/v1/logs", "inbound|4317||x", False),
        ("https://telemetry-otlp-logs.kyma-system.svc:4317/v1/logs", "outbound", False),
    ],
)
def test_span_gateway_export(url, cluster, dropped):
    span = Span(
        attributes={
            "component": "proxy",
            "http.method": "POST",
            "http.url": url,
            "upstream_cluster.name": cluster,
        }
    )
    assert should_drop_span(span, {}) is dropped


def test_span_gateway_export_requires_post():
    span = Span(
        attributes={
            "component": "proxy",
            "http.method": "GET",
            "http.url": "https://telemetry-otlp-logs.kyma-system.svc:4317/v1/logs",
            "upstream_cluster.name": "outbound|4317||x",
        }
    )
    assert should_drop_span(span, {}) is False


def test_span_scrape_requires_inbound_cluster():
    attrs = {
        "component": "proxy",
        "http.method": "GET",
        "user_agent": "kyma-otelcol/1.0",
        "upstream_cluster.name": "outbound|8080||x",
    }
    assert should_drop_span(Span(attributes=attrs), {}) is False
    attrs["upstream_cluster.name"] = "inbound|8080||x"
    assert should_drop_span(Span(attributes=attrs), {}) is True


@pytest.mark.parametrize(
    "namespace, url, dropped",
    [
        ("istio-system", "https://healthz.example.com/healthz/ready", True),
        ("default", "https://healthz.example.com/healthz/ready", False),
        ("istio-system", "http://healthz.example.com/healthz/ready", False),
        ("istio-system", "https://healthz.example.com/healthz/live", False),
    ],
)
def test_span_availability_probe(namespace, url, dropped):
    span = Span(
        attributes={
            "component": "proxy",
            "istio.canonical_service": "istio-ingressgateway",
            "http.method": "GET",
            "http.url": url,
            "upstream_cluster.name": "outbound|443||x",
        }
    )
    assert should_drop_span(span, {"k8s.namespace.name": namespace}) is dropped


@pytest.mark.parametrize(
    "name, attrs, dropped",
    [
        ("istio_requests_total", {"source_workload": "telemetry-metric-agent"}, True),
        ("istio.requests.total", {"source_workload": "telemetry-metric-agent"}, False),
        ("istio_requests_total", {"destination_workload": "telemetry-trace-gateway"}, True),
        ("istio_requests_total", {"destination_workload": "telemetry-log-agent"}, False),
        ("istio_requests_total", {"source_workload": "telemetry-log-gateway"}, False),
        ("istio_requests_total", {}, False),
    ],
)
def test_metric_data_point(name, attrs, dropped):
    assert should_drop_metric_data_point(name, attrs) is dropped