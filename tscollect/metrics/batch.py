"""Keep agent metrics in memory and publish them as a batch."""

from __future__ import annotations


from ..datapoint import Batch
from ..metadata import RateType, Unit
from .base import MetricsCollector

_SeriesKey = tuple[str, frozenset[tuple[str, str]]]


def _series(name: str, tags: dict[str, str] | None) -> _SeriesKey:
    return name, frozenset((tags or {}).items())


class BatchMetricsCollector(MetricsCollector):
    """Aggregate agent metrics so they can travel with the collected data.

    Counters keep their running total, gauges and timings keep the last
    value. snapshot() turns the current state into a Batch.
    """

    def __init__(self) -> None:
        """Initialize empty state."""
        self._values: dict[_SeriesKey, tuple[float, RateType, str]] = {}

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Store the current value."""
        self._values[_series(name, tags)] = (value, RateType.GAUGE, Unit.COUNT)

    def increment(
        self,
        name: str,
        value: float = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Add value to the running total."""
        key = _series(name, tags)
        total = self._values[key][0] if key in self._values else 0
        self._values[key] = (total + value, RateType.COUNTER, Unit.COUNT)

    def timing(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Store the last measured time."""
        self._values[_series(name, tags)] = (value, RateType.GAUGE, Unit.MILLISECOND)

    def snapshot(self, collector: str | None = None) -> Batch:
        """Return all metrics as a batch."""
        batch = Batch(collector)
        for (name, tags), (value, rate_type, unit) in sorted(
            self._values.items(),
            key=lambda item: (item[0][0], sorted(item[0][1])),
        ):
            batch.add(
                name,
                value,
                dict(tags),
                rate_type,
                unit,
                f"Agent internal metric {name}.",
            )
        return batch
