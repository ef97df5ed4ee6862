"""Processor that drops Istio telemetry produced by telemetry infrastructure itself."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from kymaotel.component import (
    Capabilities,
    InvalidConfigError,
    Processor,
    ProcessorFactory,
    Settings,
    SkipProcessingData,
    StabilityLevel,
)
from kymaotel.noise_rules import (
    should_drop_log_record,
    should_drop_metric_data_point,
    should_drop_span,
)
from kymaotel.pdata import Logs, Metric, Metrics, MetricType, Traces

COMPONENT_TYPE = "istio_noise_filter"
LOGS_STABILITY = StabilityLevel.ALPHA
METRICS_STABILITY = StabilityLevel.ALPHA
TRACES_STABILITY = StabilityLevel.ALPHA

_CAPABILITIES = Capabilities(mutates_data=True)
_INVALID_CONFIG_MESSAGE = "invalid configuration, expected istio noise filter Config"


@dataclass
class Config:
    """Configuration of the Istio noise filter; it has no options."""


class IstioNoiseFilter:
    """Removes noisy spans, log records and metric data points in place."""

    def __init__(self, config: Config, settings: Settings) -> None:
        self.config = config
        self.logger = settings.logger

    def process_traces(self, traces: Traces) -> Traces:
        """Drop noisy spans; raise SkipProcessingData if nothing is left."""
        for rs in traces.resource_spans:
            resource_attrs = rs.resource.attributes
            for ss in rs.scope_spans:
                ss.spans[:] = [s for s in ss.spans if not should_drop_span(s, resource_attrs)]
            rs.scope_spans[:] = [ss for ss in rs.scope_spans if ss.spans]
        traces.resource_spans[:] = [rs for rs in traces.resource_spans if rs.scope_spans]

        if not traces.resource_spans:
            raise SkipProcessingData
        return traces

    def process_logs(self, logs: Logs) -> Logs:
        """Drop noisy log records; raise SkipProcessingData if nothing is left."""
        for rl in logs.resource_logs:
            resource_attrs = rl.resource.attributes
            for sl in rl.scope_logs:
                sl.log_records[:] = [
                    r for r in sl.log_records if not should_drop_log_record(r, resource_attrs)
                ]
            rl.scope_logs[:] = [sl for sl in rl.scope_logs if sl.log_records]
        logs.resource_logs[:] = [rl for rl in logs.resource_logs if rl.scope_logs]

        if not logs.resource_logs:
            raise SkipProcessingData
        return logs

    def process_metrics(self, metrics: Metrics) -> Metrics:
        """Drop noisy data points; raise SkipProcessingData if nothing is left."""
        for rm in metrics.resource_metrics:
            for sm in rm.scope_metrics:
                sm.metrics[:] = [m for m in sm.metrics if self._filter_data_points(m) != 0]
            rm.scope_metrics[:] = [sm for sm in rm.scope_metrics if sm.metrics]
        metrics.resource_metrics[:] = [rm for rm in metrics.resource_metrics if rm.scope_metrics]

        if not metrics.resource_metrics:
            raise SkipProcessingData
        return metrics

    def _filter_data_points(self, metric: Metric) -> int:
        """Remove matching data points and return how many remain, or -1 for untyped metrics."""
        if metric.type is MetricType.EMPTY:
            self.logger.warning(
                "Unknown metric type encountered in processMetrics: metric_name=%s metric_type=%s",
                metric.name,
                metric.type.value,
            )
            return -1
        metric.data_points[:] = [
            dp
            for dp in metric.data_points
            if not should_drop_metric_data_point(metric.name, dp.attributes)
        ]
        return len(metric.data_points)


def _checked_config(config: Any) -> Config:
    if not isinstance(config, Config):
        raise InvalidConfigError(_INVALID_CONFIG_MESSAGE)
    return config


def _create_logs(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    proc = IstioNoiseFilter(_checked_config(config), settings)
    return Processor(proc.process_logs, next_consumer, _CAPABILITIES)


def _create_traces(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    proc = IstioNoiseFilter(_checked_config(config), settings)
    return Processor(proc.process_traces, next_consumer, _CAPABILITIES)


def _create_metrics(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    proc = IstioNoiseFilter(_checked_config(config), settings)
    return Processor(proc.process_metrics, next_consumer, _CAPABILITIES)


def new_factory() -> ProcessorFactory:
    """Return the factory of the Istio noise filter."""
    return ProcessorFactory(
        COMPONENT_TYPE,
        Config,
        logs=(_create_logs, LOGS_STABILITY),
        metrics=(_create_metrics, METRICS_STABILITY),
        traces=(_create_traces, TRACES_STABILITY),
    )