"""Collectors and the sources they read."""

from .base import (
    CollectionResult,
    Collector,
    CollectorState,
    FunctionCollector,
    StatCollector,
)
from .memcached import MEMCACHED_META, memcached_collector

__all__ = [
    "MEMCACHED_META",
    "CollectionResult",
    "Collector",
    "CollectorState",
    "FunctionCollector",
    "StatCollector",
    "memcached_collector",
]
