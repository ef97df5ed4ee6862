"""In-memory telemetry data model: logs, traces and metrics with attributes."""

from __future__ import annotations

import base64
import json
import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any


class SeverityNumber(IntEnum):
    """Log severity numbers as defined by the OpenTelemetry log data model."""

    UNSPECIFIED = 0
    TRACE = 1
    TRACE2 = 2
    TRACE3 = 3
    TRACE4 = 4
    DEBUG = 5
    DEBUG2 = 6
    DEBUG3 = 7
    DEBUG4 = 8
    INFO = 9
    INFO2 = 10
    INFO3 = 11
    INFO4 = 12
    WARN = 13
    WARN2 = 14
    WARN3 = 15
    WARN4 = 16
    ERROR = 17
    ERROR2 = 18
    ERROR3 = 19
    ERROR4 = 20
    FATAL = 21
    FATAL2 = 22
    FATAL3 = 23
    FATAL4 = 24


@dataclass
class InstrumentationScope:
    """Name, version and attributes of the library that produced telemetry."""

    name: str = ""
    version: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Resource:
    """The entity that produced telemetry, described by its attributes."""

    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class LogRecord:
    """A single log entry."""

    attributes: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    severity_text: str = ""
    severity_number: SeverityNumber = SeverityNumber.UNSPECIFIED


@dataclass
class ScopeLogs:
    """Log records produced by one instrumentation scope."""

    scope: InstrumentationScope = field(default_factory=InstrumentationScope)
    log_records: list[LogRecord] = field(default_factory=list)


@dataclass
class ResourceLogs:
    """Log records of one resource, grouped by scope."""

    resource: Resource = field(default_factory=Resource)
    scope_logs: list[ScopeLogs] = field(default_factory=list)


@dataclass
class Logs:
    """A batch of logs."""

    resource_logs: list[ResourceLogs] = field(default_factory=list)

    def log_record_count(self) -> int:
        """Return the number of log records in the batch."""
        return sum(
            len(sl.log_records) for rl in self.resource_logs for sl in rl.scope_logs
        )


@dataclass
class Span:
    """A single span of a trace."""

    name: str = ""
    kind: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScopeSpans:
    """Spans produced by one instrumentation scope."""

    scope: InstrumentationScope = field(default_factory=InstrumentationScope)
    spans: list[Span] = field(default_factory=list)


@dataclass
class ResourceSpans:
    """Spans of one resource, grouped by scope."""

    resource: Resource = field(default_factory=Resource)
    scope_spans: list[ScopeSpans] = field(default_factory=list)


@dataclass
class Traces:
    """A batch of spans."""

    resource_spans: list[ResourceSpans] = field(default_factory=list)

    def span_count(self) -> int:
        """Return the number of spans in the batch."""
        return sum(len(ss.spans) for rs in self.resource_spans for ss in rs.scope_spans)


class MetricType(Enum):
    """The kind of data a metric carries."""

    EMPTY = "Empty"
    GAUGE = "Gauge"
    SUM = "Sum"
    HISTOGRAM = "Histogram"
    EXPONENTIAL_HISTOGRAM = "ExponentialHistogram"
    SUMMARY = "Summary"


@dataclass
class DataPoint:
    """One data point of a metric; the value's shape depends on the metric type."""

    attributes: dict[str, Any] = field(default_factory=dict)
    value: Any = None


@dataclass
class Metric:
    """A named metric of a given type with its data points."""

    name: str = ""
    type: MetricType = MetricType.EMPTY
    data_points: list[DataPoint] = field(default_factory=list)


@dataclass
class ScopeMetrics:
    """Metrics produced by one instrumentation scope."""

    scope: InstrumentationScope = field(default_factory=InstrumentationScope)
    metrics: list[Metric] = field(default_factory=list)


@dataclass
class ResourceMetrics:
    """Metrics of one resource, grouped by scope."""

    resource: Resource = field(default_factory=Resource)
    scope_metrics: list[ScopeMetrics] = field(default_factory=list)


@dataclass
class Metrics:
    """A batch of metrics."""

    resource_metrics: list[ResourceMetrics] = field(default_factory=list)

    def data_point_count(self) -> int:
        """Return the number of data points of all typed metrics in the batch."""
        return sum(
            len(m.data_points)
            for rm in self.resource_metrics
            for sm in rm.scope_metrics
            for m in sm.metrics
            if m.type is not MetricType.EMPTY
        )


def _float_as_string(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    magnitude = abs(value)
    if magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21):
        mantissa, exponent = repr(value).split("e")
        sign = exponent[0] if exponent[0] in "+-" else "+"
        digits = exponent.lstrip("+-").lstrip("0") or "0"
        return f"{mantissa}e{sign}{digits}"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return value


def as_string(value: Any) -> str:
    """Render an attribute value as a string the way telemetry attributes are rendered."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _float_as_string(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(_jsonable(value), separators=(",", ":"), sort_keys=True)
    return str(value)