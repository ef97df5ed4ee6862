"""Processor that enriches Istio access log records with severity, scope and split attributes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kymaotel.component import (
    Capabilities,
    InvalidConfigError,
    Processor,
    ProcessorFactory,
    Settings,
    StabilityLevel,
)
from kymaotel.pdata import LogRecord, Logs, ScopeLogs, SeverityNumber

COMPONENT_TYPE = "istio_enrichment"
LOGS_STABILITY = StabilityLevel.ALPHA

KYMA_MODULE_ATTRIBUTE = "kyma.module"
KYMA_MODULE_ISTIO = "istio"
ISTIO_SCOPE_NAME = "io.kyma-project.telemetry/istio"
CLIENT_ADDRESS_ATTRIBUTE = "client.address"
CLIENT_PORT_ATTRIBUTE = "client.port"
NETWORK_PROTOCOL_NAME_ATTRIBUTE = "network.protocol.name"
NETWORK_PROTOCOL_VERSION_ATTRIBUTE = "network.protocol.version"
DEFAULT_SEVERITY_TEXT = "INFO"
DEFAULT_SEVERITY_NUMBER = SeverityNumber.INFO

_CAPABILITIES = Capabilities(mutates_data=True)
_INVALID_CONFIG_MESSAGE = "invalid configuration"


@dataclass
class Config:
    """Configuration of the Istio enrichment processor."""

    scope_version: str = ""


def _split_host_port(hostport: str) -> tuple[str, str]:
    """Split "host:port" or "[host]:port"; raise ValueError if the form is wrong."""
    i = hostport.rfind(":")
    if i < 0:
        raise ValueError(f"address {hostport}: missing port in address")
    start, end_of_host = 0, 0
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"address {hostport}: missing ']' in address")
        if end + 1 == len(hostport):
            raise ValueError(f"address {hostport}: missing port in address")
        if end + 1 != i:
            if hostport[end + 1] == ":":
                raise ValueError(f"address {hostport}: too many colons in address")
            raise ValueError(f"address {hostport}: missing port in address")
        host = hostport[1:end]
        start, end_of_host = 1, end + 1
    else:
        host = hostport[:i]
        if ":" in host:
            raise ValueError(f"address {hostport}: too many colons in address")
    if "[" in hostport[start:]:
        raise ValueError(f"address {hostport}: unexpected '[' in address")
    if "]" in hostport[end_of_host:]:
        raise ValueError(f"address {hostport}: unexpected ']' in address")
    return host, hostport[i + 1 :]


def _enrich_severity(record: LogRecord) -> None:
    record.severity_text = DEFAULT_SEVERITY_TEXT
    record.severity_number = DEFAULT_SEVERITY_NUMBER


def _split_network_protocol(record: LogRecord) -> None:
    protocol = record.attributes.get(NETWORK_PROTOCOL_NAME_ATTRIBUTE)
    if not isinstance(protocol, str) or not protocol:
        return
    parts = protocol.split("/")
    if len(parts) == 2:
        record.attributes[NETWORK_PROTOCOL_NAME_ATTRIBUTE] = parts[0]
        record.attributes[NETWORK_PROTOCOL_VERSION_ATTRIBUTE] = parts[1]


def _split_client_address(record: LogRecord) -> None:
    address = record.attributes.get(CLIENT_ADDRESS_ATTRIBUTE)
    if not isinstance(address, str) or not address:
        return
    try:
        host, port = _split_host_port(address)
    except ValueError:
        return
    record.attributes[CLIENT_ADDRESS_ATTRIBUTE] = host
    record.attributes[CLIENT_PORT_ATTRIBUTE] = port


class IstioEnrichmentProcessor:
    """Rewrites log records marked as Istio access logs."""

    def __init__(self, logger: logging.Logger, config: Config) -> None:
        self.logger = logger
        self.config = config

    def process_logs(self, logs: Logs) -> Logs:
        """Enrich every Istio access log record in place and return the batch."""
        for resource_logs in logs.resource_logs:
            for scope_logs in resource_logs.scope_logs:
                scope_updated = False
                for record in scope_logs.log_records:
                    if record.attributes.get(KYMA_MODULE_ATTRIBUTE) != KYMA_MODULE_ISTIO:
                        continue
                    _enrich_severity(record)
                    _split_network_protocol(record)
                    _split_client_address(record)
                    record.attributes.pop(KYMA_MODULE_ATTRIBUTE, None)
                    if not scope_updated:
                        self._set_scope(scope_logs)
                        scope_updated = True
        return logs

    def _set_scope(self, scope_logs: ScopeLogs) -> None:
        scope_logs.scope.name = ISTIO_SCOPE_NAME
        scope_logs.scope.version = self.config.scope_version


def _create_logs(settings: Settings, config: Any, next_consumer: Any) -> Processor:
    if not isinstance(config, Config):
        raise InvalidConfigError(_INVALID_CONFIG_MESSAGE)
    proc = IstioEnrichmentProcessor(settings.logger, config)
    return Processor(proc.process_logs, next_consumer, _CAPABILITIES)


def new_factory() -> ProcessorFactory:
    """Return the factory of the Istio enrichment processor."""
    return ProcessorFactory(
        COMPONENT_TYPE,
        Config,
        logs=(_create_logs, LOGS_STABILITY),
    )