"""Rules that recognise Istio proxy telemetry produced by telemetry infrastructure itself."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from kymaotel.pdata import LogRecord, Span

TELEMETRY_MODULE_GATEWAYS = frozenset(
    {
        "telemetry-log-gateway",
        "telemetry-metric-gateway",
        "telemetry-trace-gateway",
    }
)

TELEMETRY_MODULE_AGENTS = frozenset(
    {
        "telemetry-log-agent",
        "telemetry-metric-agent",
        "telemetry-fluent-bit",
    }
)

TELEMETRY_MODULE_COMPONENTS = TELEMETRY_MODULE_GATEWAYS | TELEMETRY_MODULE_AGENTS

_TELEMETRY_GATEWAY_URL = re.compile(
    r"^https?://telemetry-otlp-(logs|metrics|traces)\.kyma-system(\..*)?:(4317|4318).*"
)
_TELEMETRY_GATEWAY_HOST = re.compile(r"^telemetry-otlp-(logs|metrics|traces)\.kyma-system.*")

_HEALTHZ_HOST_PREFIX = "healthz."
_HEALTHZ_PATH = "/healthz/ready"
_HEALTHZ_URL = re.compile(
    r"^https://" + re.escape(_HEALTHZ_HOST_PREFIX) + r".+" + re.escape(_HEALTHZ_PATH)
)

_ISTIO_METRIC_PREFIX = "istio_"


def _str_attr(attrs: Mapping[str, Any], key: str) -> str:
    """Return the attribute as a string, or "" if it is missing or not a string."""
    value = attrs.get(key)
    return value if isinstance(value, str) else ""


def _is_metric_agent_user_agent(user_agent: str) -> bool:
    # The metric agent sends its binary name as user agent.
    return user_agent.startswith("kyma-otelcol/")


def _is_rma_user_agent(user_agent: str) -> bool:
    # RMA is based on vmagent, which sends this user agent.
    return user_agent.startswith("vm_promscrape")


@dataclass(frozen=True)
class _LogAttrs:
    kyma_module: str
    server_address: str
    http_method: str
    http_direction: str
    user_agent: str
    url_path: str
    namespace: str
    deployment_name: str
    daemonset_name: str

    @classmethod
    def extract(cls, log_record: LogRecord, resource_attrs: Mapping[str, Any]) -> "_LogAttrs":
        attrs = log_record.attributes
        return cls(
            kyma_module=_str_attr(attrs, "kyma.module"),
            server_address=_str_attr(attrs, "server.address"),
            http_method=_str_attr(attrs, "http.request.method"),
            http_direction=_str_attr(attrs, "http.direction"),
            user_agent=_str_attr(attrs, "user_agent.original"),
            url_path=_str_attr(attrs, "url.path"),
            namespace=_str_attr(resource_attrs, "k8s.namespace.name"),
            deployment_name=_str_attr(resource_attrs, "k8s.deployment.name"),
            daemonset_name=_str_attr(resource_attrs, "k8s.daemonset.name"),
        )


def should_drop_log_record(log_record: LogRecord, resource_attrs: Mapping[str, Any]) -> bool:
    """Tell whether an Istio access log record is noise from telemetry infrastructure."""
    attrs = _LogAttrs.extract(log_record, resource_attrs)

    # Marks an Istio proxy access log.
    if attrs.kyma_module != "istio":
        return False

    return (
        _is_telemetry_component_access_log(attrs)
        or bool(_TELEMETRY_GATEWAY_HOST.match(attrs.server_address))
        or _is_metric_scrape_access_log(attrs)
        or _is_availability_probe_access_log(attrs)
    )


def _is_telemetry_component_access_log(attrs: _LogAttrs) -> bool:
    if attrs.namespace != "kyma-system":
        return False
    return (
        attrs.daemonset_name in TELEMETRY_MODULE_AGENTS
        or attrs.deployment_name in TELEMETRY_MODULE_GATEWAYS
    )


def _is_availability_probe_access_log(attrs: _LogAttrs) -> bool:
    if attrs.http_method != "GET" or attrs.http_direction != "outbound":
        return False
    return attrs.server_address.startswith(_HEALTHZ_HOST_PREFIX) and attrs.url_path.endswith(
        _HEALTHZ_PATH
    )


def _is_metric_scrape_access_log(attrs: _LogAttrs) -> bool:
    if attrs.http_method != "GET" or attrs.http_direction != "inbound":
        return False
    return _is_rma_user_agent(attrs.user_agent) or _is_metric_agent_user_agent(attrs.user_agent)


@dataclass(frozen=True)
class _SpanAttrs:
    namespace: str
    component: str
    canonical_service: str
    http_method: str
    http_url: str
    upstream_cluster: str
    user_agent: str

    @classmethod
    def extract(cls, span: Span, resource_attrs: Mapping[str, Any]) -> "_SpanAttrs":
        attrs = span.attributes
        return cls(
            namespace=_str_attr(resource_attrs, "k8s.namespace.name"),
            component=_str_attr(attrs, "component"),
            canonical_service=_str_attr(attrs, "istio.canonical_service"),
            http_method=_str_attr(attrs, "http.method"),
            http_url=_str_attr(attrs, "http.url"),
            upstream_cluster=_str_attr(attrs, "upstream_cluster.name"),
            user_agent=_str_attr(attrs, "user_agent"),
        )


def should_drop_span(span: Span, resource_attrs: Mapping[str, Any]) -> bool:
    """Tell whether an Istio proxy span is noise from telemetry infrastructure."""
    attrs = _SpanAttrs.extract(span, resource_attrs)

    if attrs.component != "proxy":
        return False

    return (
        _is_telemetry_component_span(attrs)
        or _is_telemetry_gateway_span(attrs)
        or _is_metric_scrape_span(attrs)
        or _is_availability_probe_span(attrs)
    )


def _is_telemetry_component_span(attrs: _SpanAttrs) -> bool:
    return attrs.namespace == "kyma-system" and attrs.canonical_service in TELEMETRY_MODULE_COMPONENTS


def _is_availability_probe_span(attrs: _SpanAttrs) -> bool:
    # The availability service probes readiness endpoints of the ingress gateway.
    if attrs.namespace != "istio-system":
        return False
    if attrs.canonical_service != "istio-ingressgateway":
        return False
    if attrs.http_method != "GET":
        return False
    if not attrs.upstream_cluster.startswith("outbound|"):
        return False
    return bool(_HEALTHZ_URL.match(attrs.http_url))


def _is_telemetry_gateway_span(attrs: _SpanAttrs) -> bool:
    if attrs.http_method != "POST":
        return False
    if not attrs.upstream_cluster.startswith("outbound|"):
        return False
    return bool(_TELEMETRY_GATEWAY_URL.match(attrs.http_url))


def _is_metric_scrape_span(attrs: _SpanAttrs) -> bool:
    if attrs.http_method != "GET":
        return False
    if not attrs.upstream_cluster.startswith("inbound|"):
        return False
    return _is_metric_agent_user_agent(attrs.user_agent) or _is_rma_user_agent(attrs.user_agent)


def should_drop_metric_data_point(metric_name: str, data_point_attrs: Mapping[str, Any]) -> bool:
    """Tell whether an Istio metric data point records traffic of telemetry components."""
    if not metric_name.startswith(_ISTIO_METRIC_PREFIX):
        return False

    if _str_attr(data_point_attrs, "source_workload") == "telemetry-metric-agent":
        return True

    # Only gateways can be on the receiving side.
    if "destination_workload" in data_point_attrs:
        return _str_attr(data_point_attrs, "destination_workload") in TELEMETRY_MODULE_GATEWAYS

    return False