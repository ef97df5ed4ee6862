"""Processor that fills in the service name of resources from Kubernetes attributes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, MutableMapping

from kymaotel.component import (
    Capabilities,
    InvalidConfigError,
    Processor,
    ProcessorFactory,
    Settings,
    StabilityLevel,
)
from kymaotel.pdata import Logs, Metrics, Traces, as_string

COMPONENT_TYPE = "service_enrichment"
LOGS_STABILITY = StabilityLevel.ALPHA
TRACES_STABILITY = StabilityLevel.ALPHA
METRICS_STABILITY = StabilityLevel.ALPHA

UNKNOWN_SERVICE = "unknown_service"
SERVICE_NAME_ATTRIBUTE = "service.name"

DEFAULT_ATTRIBUTE_KEYS_PRIORITY = (
    "k8s.deployment.name",
    "k8s.daemonset.name",
    "k8s.statefulset.name",
    "k8s.job.name",
    "k8s.pod.name",
)

_UNKNOWN_SERVICE_PATTERN = re.compile(r"unknown_service(:.+)?")
_CAPABILITIES = Capabilities(mutates_data=True)
_INVALID_CONFIG_MESSAGE = "invalid configuration"


@dataclass
class Config:
    """Configuration: resource attributes to try, in order, before the defaults."""

    resource_attributes: list[str] = field(default_factory=list)


def _is_unknown_service(name: str) -> bool:
    return _UNKNOWN_SERVICE_PATTERN.fullmatch(name) is not None


def _should_skip(attributes: MutableMapping[str, Any]) -> bool:
    if SERVICE_NAME_ATTRIBUTE not in attributes:
        return False
    name = as_string(attributes[SERVICE_NAME_ATTRIBUTE])
    return name != "" and not _is_unknown_service(name)


def _fallback_service_name(attributes: MutableMapping[str, Any]) -> str:
    if SERVICE_NAME_ATTRIBUTE not in attributes:
        return UNKNOWN_SERVICE
    name = as_string(attributes[SERVICE_NAME_ATTRIBUTE])
    if name and _is_unknown_service(name):
        return name
    return UNKNOWN_SERVICE


class ServiceEnrichmentProcessor:
    """Sets service.name on resources that have none or an unknown one."""

    def __init__(self, logger: logging.Logger, config: Config) -> None:
        self.logger = logger
        self.attribute_keys = [*config.resource_attributes, *DEFAULT_ATTRIBUTE_KEYS_PRIORITY]

    def process_traces(self, traces: Traces) -> Traces:
        """Enrich the resource of every span group."""
        for rs in traces.resource_spans:
            self.enrich_service_name(rs.resource.attributes)
        return traces

    def process_metrics(self, metrics: Metrics) -> Metrics:
        """Enrich the resource of every metric group."""
        for rm in metrics.resource_metrics:
            self.enrich_service_name(rm.resource.attributes)
        return metrics

    def process_logs(self, logs: Logs) -> Logs:
        """Enrich the resource of every log group."""
        for rl in logs.resource_logs:
            self.enrich_service_name(rl.resource.attributes)
        return logs

    def enrich_service_name(self, attributes: MutableMapping[str, Any]) -> None:
        """Set service.name unless it already holds a known service name."""
        if _should_skip(attributes):
            return
        attributes[SERVICE_NAME_ATTRIBUTE] = self.resolve_service_name(attributes)

    def resolve_service_name(self, attributes: MutableMapping[str, Any]) -> str:
        """Return the first configured attribute present, else a fallback name."""
        for key in self.attribute_keys:
            if key in attributes:
                return as_string(attributes[key])
        return _fallback_service_name(attributes)


def _processor(settings: Settings, config: Any) -> ServiceEnrichmentProcessor:
    if not isinstance(config, Config):
        raise InvalidConfigError(_INVALID_CONFIG_MESSAGE)
    return ServiceEnrichmentProcessor(settings.logger, config)


def _create_logs(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    return Processor(_processor(settings, config).process_logs, next_consumer, _CAPABILITIES)


def _create_traces(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    return Processor(_processor(settings, config).process_traces, next_consumer, _CAPABILITIES)


def _create_metrics(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    return Processor(_processor(settings, config).process_metrics, next_consumer, _CAPABILITIES)


def new_factory() -> ProcessorFactory:
    """Return the factory of the service enrichment processor."""
    return ProcessorFactory(
        COMPONENT_TYPE,
        Config,
        logs=(_create_logs, LOGS_STABILITY),
        traces=(_create_traces, TRACES_STABILITY),
        metrics=(_create_metrics, METRICS_STABILITY),
    )