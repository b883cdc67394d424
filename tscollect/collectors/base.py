"""Schedulable collection units."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
import logging
import time

import async_timeout

from ..const import DEFAULT_INTERVAL
from ..datapoint import Batch
from ..exceptions import CollectorBusyError, CollectorTimeoutError, SourceError
from ..metadata import MetricRegistry
from ..metrics import MetricsCollector, create_noop_metrics_collector
from ..parser import PointEmitter
from ..source import RawStatSource

_LOGGER = logging.getLogger(__name__)


class CollectorState(str, Enum):
    """Run state of a collector."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass(slots=True)
class CollectionResult:
    """Outcome of one collection pass.

    batch is None for a failed pass unless the collector delivers
    partial batches.
    """

    collector: str
    batch: Batch | None
    error: Exception | None
    started: float
    duration: float

    @property
    def ok(self) -> bool:
        """Return True if the pass finished without error."""
        return self.error is None


class Collector(ABC):
    """A named unit of periodic collection with its own failure domain."""

    def __init__(
        self,
        name: str,
        interval: float = DEFAULT_INTERVAL,
        timeout: float | None = None,
        tags: Mapping[str, str] | None = None,
        deliver_partial: bool = False,
    ) -> None:
        """Initialize collector."""
        if interval <= 0:
            raise ValueError(f"Interval of {name} must be positive")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Timeout of {name} must be positive")

        self._name = name
        self._interval = interval
        self._timeout = timeout or interval
        self._tags = dict(tags or {})
        self._deliver_partial = deliver_partial
        self._state = CollectorState.IDLE
        self._run_count = 0
        self._failure_count = 0

    @property
    def name(self) -> str:
        """Return collector name."""
        return self._name

    @property
    def interval(self) -> float:
        """Return seconds between two passes."""
        return self._interval

    @property
    def timeout(self) -> float:
        """Return the upper bound of a single pass in seconds."""
        return self._timeout

    @property
    def state(self) -> CollectorState:
        """Return current run state."""
        return self._state

    @property
    def is_running(self) -> bool:
        """Return True while a pass is in flight."""
        return self._state == CollectorState.RUNNING

    @property
    def run_count(self) -> int:
        """Return number of started passes."""
        return self._run_count

    @property
    def failure_count(self) -> int:
        """Return number of failed passes."""
        return self._failure_count

    def enabled(self) -> bool:
        """Return False if this collector can't work on this host."""
        return True

    @abstractmethod
    async def collect(self, batch: Batch, metrics: MetricsCollector) -> None:
        """Fill batch with the points of one pass."""

    async def run(self, metrics: MetricsCollector | None = None) -> CollectionResult:
        """Run a single pass bounded by the timeout.

        Errors of the pass are returned with the result, only cancellation
        propagates.
        """
        if self.is_running:
            raise CollectorBusyError(f"Collector {self._name} is already running")

        self._state = CollectorState.RUNNING
        self._run_count += 1
        batch = Batch(self._name, self._tags)
        error: Exception | None = None
        started = time.monotonic()
        deadline = async_timeout.timeout(self._timeout)

        try:
            async with deadline:
                await self.collect(batch, metrics or create_noop_metrics_collector())
        except asyncio.TimeoutError as err:
            if deadline.expired:
                error = CollectorTimeoutError(
                    f"Collector {self._name} timed out after {self._timeout}s",
                )
                _LOGGER.warning("%s", error)
            else:
                error = err
                _LOGGER.exception("Unexpected error in collector %s", self._name)
        except SourceError as err:
            error = err
            _LOGGER.warning("Collector %s failed: %s", self._name, err)
        except Exception as err:  # noqa: BLE001
            error = err
            _LOGGER.exception("Unexpected error in collector %s", self._name)
        finally:
            self._state = CollectorState.IDLE

        if error is not None:
            self._failure_count += 1

        return CollectionResult(
            self._name,
            batch if error is None or self._deliver_partial else None,
            error,
            started,
            time.monotonic() - started,
        )

    def __repr__(self) -> str:
        """Return string representation for logger."""
        return f"{type(self).__name__}(name={self._name!r}, interval={self._interval})"


class StatCollector(Collector):
    """Collect raw stat lines and normalize them through a registry."""

    def __init__(
        self,
        name: str,
        registry: MetricRegistry,
        source_factory: Callable[[], RawStatSource],
        *,
        prefix: str = "",
        interval: float = DEFAULT_INTERVAL,
        timeout: float | None = None,
        tags: Mapping[str, str] | None = None,
        enabled: Callable[[], bool] | None = None,
        deliver_partial: bool = False,
    ) -> None:
        """Initialize stat collector."""
        super().__init__(
            name,
            interval=interval,
            timeout=timeout,
            tags=tags,
            deliver_partial=deliver_partial,
        )
        self._registry = registry
        self._source_factory = source_factory
        self._prefix = prefix
        self._enabled = enabled

    @property
    def registry(self) -> MetricRegistry:
        """Return the metadata registry."""
        return self._registry

    def enabled(self) -> bool:
        """Return result of the enable check."""
        if self._enabled is None:
            return True
        return self._enabled()

    async def collect(self, batch: Batch, metrics: MetricsCollector) -> None:
        """Read a fresh source into batch."""
        emitter = PointEmitter(self._registry, self._prefix, batch, metrics)
        await emitter.consume(self._source_factory())


class FunctionCollector(Collector):
    """Collector running a plain coroutine function."""

    def __init__(
        self,
        name: str,
        func: Callable[[Batch], Awaitable[None]],
        interval: float = DEFAULT_INTERVAL,
        timeout: float | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize function collector."""
        super().__init__(name, interval=interval, timeout=timeout, tags=tags)
        self._func = func

    async def collect(self, batch: Batch, metrics: MetricsCollector) -> None:
        """Call the wrapped function."""
        await self._func(batch)
