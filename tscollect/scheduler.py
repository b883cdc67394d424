"""Run registered collectors on their own schedules."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Iterator, Mapping
import contextlib
from dataclasses import dataclass
import logging
import re
import time
from typing import NamedTuple

from .collectors import CollectionResult, Collector
from .exceptions import CollectorBusyError, DuplicateCollectorError
from .metrics import MetricsCollector, MetricsFactory, create_noop_metrics_collector

_LOGGER = logging.getLogger(__name__)


class CollectorRegistry(Mapping[str, Collector]):
    """Immutable set of collectors keyed by their unique name."""

    __slots__ = ("_collectors",)

    def __init__(self, collectors: Iterable[Collector]) -> None:
        """Initialize registry."""
        self._collectors: dict[str, Collector] = {}
        for collector in collectors:
            if collector.name in self._collectors:
                raise DuplicateCollectorError(
                    f"Collector {collector.name} is registered twice",
                )
            self._collectors[collector.name] = collector

    def filter(self, patterns: Iterable[str]) -> CollectorRegistry:
        """Return a registry with the collectors matching any pattern."""
        compiled = [re.compile(pattern) for pattern in patterns]
        if not compiled:
            return self
        return CollectorRegistry(
            collector
            for name, collector in self._collectors.items()
            if any(regex.search(name) for regex in compiled)
        )

    def __getitem__(self, name: str) -> Collector:
        """Return collector by name."""
        return self._collectors[name]

    def __iter__(self) -> Iterator[str]:
        """Iterate over collector names in registration order."""
        return iter(self._collectors)

    def __len__(self) -> int:
        """Return number of collectors."""
        return len(self._collectors)


def build_registry(collectors: Iterable[Collector]) -> CollectorRegistry:
    """Build the process wide collector registry."""
    registry = CollectorRegistry(collectors)
    _LOGGER.debug("Registered collectors: %s", ", ".join(registry))
    return registry


class CollectorStats(NamedTuple):
    """Scheduling counters of a collector."""

    runs: int
    failures: int
    skipped: int


@dataclass(slots=True)
class _Schedule:
    """Scheduling state of a single collector."""

    collector: Collector
    next_due: float | None = None
    last_start: float | None = None
    skipped: int = 0
    task: asyncio.Task[None] | None = None

    @property
    def in_flight(self) -> bool:
        """Return True if a pass is still running."""
        if self.task is not None and not self.task.done():
            return True
        return self.collector.is_running


class CollectorScheduler:
    """Trigger collectors on their interval and queue their results.

    Every pass runs in its own task, so a slow or failing collector never
    holds back the others. A collector that is still running when it is
    due again skips that tick.
    """

    def __init__(
        self,
        registry: CollectorRegistry,
        *,
        queue: asyncio.Queue[CollectionResult] | None = None,
        metrics_factory: MetricsFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize scheduler."""
        self._registry = registry
        self._queue: asyncio.Queue[CollectionResult] = (
            queue if queue is not None else asyncio.Queue()
        )
        self._metrics: MetricsCollector = (
            metrics_factory or create_noop_metrics_collector
        )()
        self._clock = clock
        self._loop_task: asyncio.Task[None] | None = None
        self._schedules: dict[str, _Schedule] = {}

        for name, collector in registry.items():
            if not collector.enabled():
                _LOGGER.info("Collector %s is disabled on this host", name)
                continue
            self._schedules[name] = _Schedule(collector)

    @property
    def registry(self) -> CollectorRegistry:
        """Return the collector registry."""
        return self._registry

    @property
    def queue(self) -> asyncio.Queue[CollectionResult]:
        """Return the delivery queue."""
        return self._queue

    @property
    def scheduled(self) -> list[str]:
        """Return names of the scheduled collectors."""
        return list(self._schedules)

    @property
    def is_running(self) -> bool:
        """Return True if the schedule loop is active."""
        return self._loop_task is not None and not self._loop_task.done()

    def next_due(self, name: str) -> float | None:
        """Return when a collector is due next, None means now."""
        return self._schedules[name].next_due

    def stats(self, name: str) -> CollectorStats:
        """Return scheduling counters of a collector."""
        schedule = self._schedules[name]
        return CollectorStats(
            schedule.collector.run_count,
            schedule.collector.failure_count,
            schedule.skipped,
        )

    @contextlib.contextmanager
    def _guard_metrics(self, name: str) -> Iterator[None]:
        """Log failures of the metrics collector instead of raising."""
        try:
            yield
        except Exception:
            _LOGGER.exception("Failed to record metrics of collector %s", name)

    def tick(self, now: float) -> list[str]:
        """Start all collectors due at now, return the started names."""
        started: list[str] = []

        for name, schedule in self._schedules.items():
            if schedule.next_due is not None and now < schedule.next_due:
                continue

            collector = schedule.collector
            if schedule.in_flight:
                schedule.skipped += 1
                next_due = schedule.next_due if schedule.next_due is not None else now
                while next_due <= now:
                    next_due += collector.interval
                schedule.next_due = next_due
                _LOGGER.debug("Skip %s, previous pass still running", name)
                with self._guard_metrics(name):
                    self._metrics.increment(
                        "tscollect.collector.skipped",
                        tags={"collector": name},
                    )
                continue

            schedule.last_start = now
            schedule.next_due = now + collector.interval
            schedule.task = asyncio.create_task(
                self._run_collector(collector),
                name=f"tscollect-{name}",
            )
            started.append(name)

        return started

    async def _run_collector(self, collector: Collector) -> None:
        """Run one pass and hand over its result."""
        tags = {"collector": collector.name}
        try:
            result = await collector.run(self._metrics)
        except CollectorBusyError:
            _LOGGER.debug("Collector %s was started elsewhere", collector.name)
            with self._guard_metrics(collector.name):
                self._metrics.increment("tscollect.collector.skipped", tags=tags)
            return

        with self._guard_metrics(collector.name):
            self._metrics.timing(
                "tscollect.collector.duration",
                result.duration * 1000,
                tags,
            )
            self._metrics.increment(
                "tscollect.collector.runs",
                tags={**tags, "result": "ok" if result.ok else "error"},
            )
            if result.batch is not None:
                self._metrics.gauge(
                    "tscollect.collector.points", len(result.batch), tags
                )

        try:
            self._queue.put_nowait(result)
        except asyncio.QueueFull:
            _LOGGER.warning("Delivery queue full, drop result of %s", collector.name)
            with self._guard_metrics(collector.name):
                self._metrics.increment("tscollect.delivery.dropped", tags=tags)

    async def _schedule_loop(self) -> None:
        """Tick whenever the next collector is due."""
        with contextlib.suppress(asyncio.CancelledError):
            while True:
                try:
                    self.tick(self._clock())
                except Exception:
                    _LOGGER.exception("Unexpected error while scheduling collectors")
                next_due = min(
                    schedule.next_due
                    for schedule in self._schedules.values()
                    if schedule.next_due is not None
                )
                sleep_time = next_due - self._clock()
                if sleep_time > 0:
                    await asyncio.sleep(sleep_time)

    async def start(self) -> None:
        """Start scheduling."""
        if self.is_running:
            return
        if not self._schedules:
            _LOGGER.warning("No collectors enabled, nothing to schedule")
            return
        _LOGGER.info("Start collectors: %s", ", ".join(self._schedules))
        self._loop_task = asyncio.create_task(self._schedule_loop())

    async def wait_idle(self) -> None:
        """Wait until no pass is in flight."""
        tasks = [
            schedule.task
            for schedule in self._schedules.values()
            if schedule.task is not None and not schedule.task.done()
        ]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Stop scheduling and cancel running passes."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        tasks = [
            schedule.task
            for schedule in self._schedules.values()
            if schedule.task is not None and not schedule.task.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        _LOGGER.info("Collectors stopped")
