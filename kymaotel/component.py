"""Processor components: factories, processors, settings and a collecting sink."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Tuple


class StabilityLevel(Enum):
    """Stability level of a component for a given signal."""

    UNDEFINED = "Undefined"
    UNMAINTAINED = "Unmaintained"
    DEPRECATED = "Deprecated"
    DEVELOPMENT = "Development"
    ALPHA = "Alpha"
    BETA = "Beta"
    STABLE = "Stable"


@dataclass(frozen=True)
class Capabilities:
    """What a processor does to the data it receives."""

    mutates_data: bool = False


@dataclass
class Settings:
    """Settings handed to a factory when it creates a processor."""

    component_type: str = ""
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("kymaotel"))


class SkipProcessingData(Exception):
    """Raised by a processing function when the data must not be passed on."""


class InvalidConfigError(ValueError):
    """Raised when a factory is given a configuration of the wrong kind."""


class _Consumer(Protocol):
    def consume(self, data: Any) -> None: ...


class Sink:
    """A consumer that keeps everything it receives."""

    def __init__(self) -> None:
        self.received: list[Any] = []

    def consume(self, data: Any) -> None:
        """Record one batch of data."""
        self.received.append(data)

    def reset(self) -> None:
        """Forget everything received so far."""
        self.received.clear()


ProcessFunc = Callable[[Any], Any]


class Processor:
    """Runs a processing function on each batch and forwards the result."""

    def __init__(
        self,
        process: ProcessFunc,
        next_consumer: Optional[_Consumer],
        capabilities: Capabilities = Capabilities(),
    ) -> None:
        if next_consumer is None:
            raise ValueError("nil next Consumer")
        self._process = process
        self._next = next_consumer
        self.capabilities = capabilities
        self.started = False

    def start(self) -> None:
        """Mark the processor as running."""
        self.started = True

    def shutdown(self) -> None:
        """Mark the processor as stopped."""
        self.started = False

    def consume(self, data: Any) -> None:
        """Process a batch and pass it on unless processing asked to skip it."""
        try:
            result = self._process(data)
        except SkipProcessingData:
            return
        self._next.consume(result)


Creator = Callable[[Settings, Any, _Consumer], Processor]
SignalEntry = Tuple[Creator, StabilityLevel]

_TYPE_PATTERN = re.compile(r"^[a-zA-Z][0-9a-zA-Z_]{0,62}$")


class ProcessorFactory:
    """Creates processors of one component type for the signals it supports."""

    def __init__(
        self,
        component_type: str,
        default_config: Callable[[], Any],
        *,
        logs: Optional[SignalEntry] = None,
        traces: Optional[SignalEntry] = None,
        metrics: Optional[SignalEntry] = None,
    ) -> None:
        if not _TYPE_PATTERN.match(component_type):
            raise ValueError(
                f"invalid character(s) in type {component_type!r}"
                if component_type
                else "id must not be empty"
            )
        self.type = component_type
        self._default_config = default_config
        self._signals: dict[str, Optional[SignalEntry]] = {
            "logs": logs,
            "traces": traces,
            "metrics": metrics,
        }

    def _stability(self, signal: str) -> StabilityLevel:
        entry = self._signals[signal]
        return entry[1] if entry else StabilityLevel.UNDEFINED

    @property
    def logs_stability(self) -> StabilityLevel:
        return self._stability("logs")

    @property
    def traces_stability(self) -> StabilityLevel:
        return self._stability("traces")

    @property
    def metrics_stability(self) -> StabilityLevel:
        return self._stability("metrics")

    def create_default_config(self) -> Any:
        """Return a fresh default configuration."""
        return self._default_config()

    def _create(self, signal: str, settings: Settings, config: Any, next_consumer: Any) -> Processor:
        entry = self._signals[signal]
        if entry is None:
            raise ValueError(f"telemetry type is not supported: {signal}")
        return entry[0](settings, config, next_consumer)

    def create_logs(self, settings: Settings, config: Any, next_consumer: Any) -> Processor:
        """Create a logs processor."""
        return self._create("logs", settings, config, next_consumer)

    def create_traces(self, settings: Settings, config: Any, next_consumer: Any) -> Processor:
        """Create a traces processor."""
        return self._create("traces", settings, config, next_consumer)

    def create_metrics(self, settings: Settings, config: Any, next_consumer: Any) -> Processor:
        """Create a metrics processor."""
        return self._create("metrics", settings, config, next_consumer)