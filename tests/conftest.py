"""Pytest fixtures for TSCollect."""

from collections.abc import Callable
import logging

import pytest

from tscollect.datapoint import Batch
from tscollect.metadata import MetricMeta, MetricRegistry, RateType, Unit

logging.basicConfig(level=logging.DEBUG)

FIXED_TIME = 1_700_000_000.0


@pytest.fixture
def registry() -> MetricRegistry:
    """Return a small registry with a rename and a plain key."""
    return MetricRegistry(
        {
            "bytes_read": MetricMeta(
                RateType.COUNTER,
                Unit.BYTES,
                "The total number of bytes read from the network.",
                metric="bytes",
                tags={"type": "read"},
            ),
            "bytes_written": MetricMeta(
                RateType.COUNTER,
                Unit.BYTES,
                "The total number of bytes written to the network.",
                metric="bytes",
                tags={"type": "write"},
            ),
            "curr_items": MetricMeta(
                RateType.GAUGE,
                Unit.ITEM,
                "The current number of items in the cache.",
            ),
        },
        name="test",
    )


@pytest.fixture
def fixed_clock() -> Callable[[], float]:
    """Return a clock that never moves."""
    return lambda: FIXED_TIME


@pytest.fixture
def batch_factory(fixed_clock: Callable[[], float]) -> Callable[[], Batch]:
    """Create batches with a fixed timestamp."""
    return lambda: Batch(clock=fixed_clock)
