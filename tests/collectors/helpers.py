"""Collectors with controllable behaviour for tests."""

import asyncio

from tscollect.collectors import Collector
from tscollect.datapoint import Batch
from tscollect.exceptions import SourceError
from tscollect.metadata import RateType, Unit
from tscollect.metrics import MetricsCollector


class BlockingCollector(Collector):
    """Collector that runs until it is released."""

    def __init__(self, name: str, interval: float = 10, timeout: float = 60) -> None:
        """Initialize blocking collector."""
        super().__init__(name, interval=interval, timeout=timeout)
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.concurrent = 0
        self.max_concurrent = 0

    async def collect(self, batch: Batch, metrics: MetricsCollector) -> None:
        """Wait for release and add one point."""
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        self.started.set()
        try:
            await self.release.wait()
        finally:
            self.concurrent -= 1
        batch.add("test.blocking", 1, None, RateType.GAUGE, Unit.COUNT, "Blocking.")


class FailingCollector(Collector):
    """Collector whose source always fails."""

    async def collect(self, batch: Batch, metrics: MetricsCollector) -> None:
        """Add a point, then fail."""
        batch.add("test.partial", 1, None, RateType.GAUGE, Unit.COUNT, "Partial.")
        raise SourceError("memcached-tool exited with 1: connection refused")


class CrashingCollector(Collector):
    """Collector raising an unexpected exception."""

    async def collect(self, batch: Batch, metrics: MetricsCollector) -> None:
        """Raise a programming error."""
        raise KeyError("boom")
