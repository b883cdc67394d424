"""Create the metrics collector handed to the scheduler."""

from collections.abc import Callable

from .base import MetricsCollector
from .noop import NoOpMetricsCollector

MetricsFactory = Callable[[], MetricsCollector]


def create_noop_metrics_collector() -> MetricsCollector:
    """Return a collector for runs without agent metrics."""
    return NoOpMetricsCollector()
