"""TSCollect agent wiring collectors to a delivery callback."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib
import logging

import async_timeout

from .collectors import CollectionResult, FunctionCollector
from .const import DEFAULT_INTERVAL
from .datapoint import Batch
from .metrics import BatchMetricsCollector
from .scheduler import CollectorRegistry, CollectorScheduler, build_registry

_LOGGER = logging.getLogger(__name__)

AGENT_COLLECTOR = "tscollect"

DeliverCallback = Callable[[Batch], Awaitable[None]]


class CollectorAgent:
    """Run all collectors and pass their batches to the delivery layer."""

    def __init__(
        self,
        registry: CollectorRegistry,
        deliver: DeliverCallback,
        *,
        self_metrics: bool = True,
        self_metrics_interval: float = DEFAULT_INTERVAL,
        queue_size: int = 0,
    ) -> None:
        """Initialize agent."""
        self._deliver = deliver
        self._metrics = BatchMetricsCollector()
        self._queue: asyncio.Queue[CollectionResult] = asyncio.Queue(queue_size)
        self._deliver_task: asyncio.Task[None] | None = None

        if self_metrics:
            registry = build_registry(
                [
                    *registry.values(),
                    FunctionCollector(
                        AGENT_COLLECTOR,
                        self._collect_self,
                        interval=self_metrics_interval,
                    ),
                ],
            )

        self._scheduler = CollectorScheduler(
            registry,
            queue=self._queue,
            metrics_factory=lambda: self._metrics,
        )

    @property
    def scheduler(self) -> CollectorScheduler:
        """Return collector scheduler."""
        return self._scheduler

    async def _collect_self(self, batch: Batch) -> None:
        """Publish the agent's own metrics."""
        for point in self._metrics.snapshot():
            batch.add(
                point.metric,
                point.value,
                point.tags,
                point.rate_type,
                point.unit,
                point.description,
            )

    async def _deliver_loop(self) -> None:
        """Hand every non empty batch to the delivery callback."""
        while True:
            result = await self._queue.get()
            try:
                if result.batch is not None and len(result.batch):
                    await self._deliver(result.batch)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Delivery of %s batch failed", result.collector)
            finally:
                self._queue.task_done()

    async def start(self) -> None:
        """Start collecting and delivering."""
        self._deliver_task = asyncio.create_task(self._deliver_loop())
        await self._scheduler.start()
        _LOGGER.info("TSCollect agent started")

    async def stop(self, timeout: float = 10) -> None:  # noqa: ASYNC109
        """Stop collecting and flush pending results."""
        await self._scheduler.stop()

        if self._deliver_task is None:
            return
        try:
            async with async_timeout.timeout(timeout):
                await self._queue.join()
        except asyncio.TimeoutError:
            _LOGGER.error("Timeout while waiting for pending deliveries")

        self._deliver_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._deliver_task
        self._deliver_task = None
        _LOGGER.info("TSCollect agent stopped")
