"""Test collector run semantics."""

import asyncio
from unittest.mock import MagicMock

import pytest

from tscollect.collectors import CollectorState, FunctionCollector, StatCollector
from tscollect.datapoint import Batch
from tscollect.exceptions import CollectorBusyError, CollectorTimeoutError, SourceError
from tscollect.metadata import MetricRegistry, RateType, Unit
from tscollect.source import StaticSource

from .helpers import BlockingCollector, CrashingCollector, FailingCollector


def test_collector_defaults() -> None:
    """Timeout defaults to the interval."""
    collector = FailingCollector("failing", interval=30)

    assert collector.name == "failing"
    assert collector.interval == 30
    assert collector.timeout == 30
    assert collector.state == CollectorState.IDLE
    assert collector.enabled()
    assert collector.run_count == 0
    assert collector.failure_count == 0


@pytest.mark.parametrize(("interval", "timeout"), [(0, None), (-1, None), (10, 0)])
def test_invalid_schedule(interval: float, timeout: float | None) -> None:
    """Interval and timeout must be positive."""
    with pytest.raises(ValueError):
        FailingCollector("failing", interval=interval, timeout=timeout)


@pytest.mark.asyncio
async def test_stat_collector_run(registry: MetricRegistry) -> None:
    """A pass returns the normalized batch."""
    collector = StatCollector(
        "memcached",
        registry,
        lambda: StaticSource("bytes_read 1024\ncurr_items 42\n"),
        prefix="memcached.",
        tags={"instance": "cache01"},
    )

    result = await collector.run()

    assert result.ok
    assert result.collector == "memcached"
    assert result.error is None
    assert result.duration >= 0
    assert result.batch is not None
    assert result.batch.collector == "memcached"
    assert [(point.metric, point.tags) for point in result.batch] == [
        ("memcached.bytes", {"instance": "cache01", "type": "read"}),
        ("memcached.curr_items", {"instance": "cache01"}),
    ]
    assert collector.run_count == 1
    assert collector.state == CollectorState.IDLE


@pytest.mark.asyncio
async def test_stat_collector_fresh_source_per_pass(registry: MetricRegistry) -> None:
    """Every pass opens a new source."""
    source_factory = MagicMock(side_effect=lambda: StaticSource("curr_items 1"))
    collector = StatCollector("memcached", registry, source_factory)

    first = await collector.run()
    second = await collector.run()

    assert source_factory.call_count == 2
    assert first.batch is not None and second.batch is not None
    assert len(first.batch) == len(second.batch) == 1
    assert first.batch is not second.batch


@pytest.mark.asyncio
async def test_source_failure_is_pass_failure() -> None:
    """A failing source fails only this pass."""
    collector = FailingCollector("failing")

    result = await collector.run()

    assert not result.ok
    assert isinstance(result.error, SourceError)
    assert result.batch is None
    assert collector.failure_count == 1
    assert collector.state == CollectorState.IDLE

    result = await collector.run()
    assert collector.run_count == 2
    assert collector.failure_count == 2


@pytest.mark.asyncio
async def test_partial_batch_delivery() -> None:
    """Collectors can opt in to keep the points of a failed pass."""
    collector = FailingCollector("failing", deliver_partial=True)

    result = await collector.run()

    assert not result.ok
    assert result.batch is not None
    assert [point.metric for point in result.batch] == ["test.partial"]


@pytest.mark.asyncio
async def test_stat_collector_partial_source(registry: MetricRegistry) -> None:
    """Source failure after some lines."""
    collector = StatCollector(
        "memcached",
        registry,
        lambda: StaticSource(["curr_items 1"], error=SourceError("reset")),
        deliver_partial=True,
    )

    result = await collector.run()

    assert isinstance(result.error, SourceError)
    assert result.batch is not None
    assert len(result.batch) == 1


@pytest.mark.asyncio
async def test_unexpected_error_is_contained() -> None:
    """Programming errors don't escape the collector."""
    collector = CrashingCollector("crashing")

    result = await collector.run()

    assert isinstance(result.error, KeyError)
    assert collector.state == CollectorState.IDLE


@pytest.mark.asyncio
async def test_timeout() -> None:
    """A hanging pass is stopped by the timeout."""
    collector = BlockingCollector("blocking", interval=10, timeout=0.05)

    result = await collector.run()

    assert isinstance(result.error, CollectorTimeoutError)
    assert result.batch is None
    assert collector.state == CollectorState.IDLE
    assert collector.concurrent == 0


@pytest.mark.asyncio
async def test_inner_timeout_error_is_not_a_collector_timeout() -> None:
    """A TimeoutError raised by the pass itself is an ordinary failure."""

    async def collect_remote(batch: Batch) -> None:
        raise TimeoutError("remote stats request timed out")

    collector = FunctionCollector("remote", collect_remote, interval=60)
    result = await collector.run()

    assert not isinstance(result.error, CollectorTimeoutError)
    assert isinstance(result.error, TimeoutError)
    assert result.batch is None
    assert collector.failure_count == 1


@pytest.mark.asyncio
async def test_no_concurrent_run() -> None:
    """A collector never runs twice at the same time."""
    collector = BlockingCollector("blocking")

    task = asyncio.create_task(collector.run())
    await collector.started.wait()
    assert collector.is_running

    with pytest.raises(CollectorBusyError):
        await collector.run()

    collector.release.set()
    result = await task

    assert result.ok
    assert collector.run_count == 1
    assert collector.max_concurrent == 1
    assert collector.state == CollectorState.IDLE


@pytest.mark.asyncio
async def test_cancel_propagates() -> None:
    """Cancellation is not turned into a failed result."""
    collector = BlockingCollector("blocking")

    task = asyncio.create_task(collector.run())
    await collector.started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert collector.state == CollectorState.IDLE


@pytest.mark.asyncio
async def test_function_collector() -> None:
    """Wrap a plain coroutine function."""

    async def collect_uptime(batch: Batch) -> None:
        batch.add("os.uptime", 120, None, RateType.GAUGE, Unit.SECOND, "Uptime.")

    collector = FunctionCollector("uptime", collect_uptime, interval=60)
    result = await collector.run()

    assert result.ok
    assert result.batch is not None
    assert result.batch[0].metric == "os.uptime"


def test_enable_check(registry: MetricRegistry) -> None:
    """The enable check decides if a collector can run."""
    collector = StatCollector(
        "memcached",
        registry,
        lambda: StaticSource(""),
        enabled=lambda: False,
    )

    assert not collector.enabled()
