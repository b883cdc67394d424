"""TSCollect self instrumentation."""

from .base import MetricsCollector
from .batch import BatchMetricsCollector
from .factory import MetricsFactory, create_noop_metrics_collector

__all__ = [
    "BatchMetricsCollector",
    "MetricsCollector",
    "MetricsFactory",
    "create_noop_metrics_collector",
]
