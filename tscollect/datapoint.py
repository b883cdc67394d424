"""Normalized data points and the batches that carry them."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
import logging
import re
import time
from typing import NamedTuple, overload

from .metadata import VALID_NAME, RateType

_LOGGER = logging.getLogger(__name__)

_INVALID_CHARS = re.compile(r"[^\w\-./]")


def clean_metric_name(name: str) -> str:
    """Replace characters the backend does not accept with underscores."""
    return _INVALID_CHARS.sub("_", name)


class DataPoint(NamedTuple):
    """Represent a single normalized metric value."""

    metric: str
    value: float
    tags: dict[str, str]
    rate_type: RateType
    unit: str
    description: str
    timestamp: float

    @property
    def key(self) -> tuple[str, frozenset[tuple[str, str]]]:
        """Return the identity of the series this point belongs to."""
        return self.metric, frozenset(self.tags.items())

    def __repr__(self) -> str:
        """Return string representation for logger."""
        tags = ",".join(f"{key}={value}" for key, value in sorted(self.tags.items()))
        return f"DataPoint({self.metric}{{{tags}}}={self.value!r} {self.rate_type.value})"


class Batch:
    """Ordered, append-only set of points produced by one collection pass.

    A batch holds at most one point per (metric, tags) series; later
    duplicates are dropped. Default tags are merged below the tags of
    every point added.
    """

    __slots__ = ("_clock", "_collector", "_default_tags", "_points", "_seen")

    def __init__(
        self,
        collector: str | None = None,
        default_tags: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an empty batch."""
        self._collector = collector
        self._default_tags = dict(default_tags or {})
        self._clock = clock
        self._points: list[DataPoint] = []
        self._seen: set[tuple[str, frozenset[tuple[str, str]]]] = set()

    @property
    def collector(self) -> str | None:
        """Return the name of the collector producing this batch."""
        return self._collector

    @property
    def points(self) -> tuple[DataPoint, ...]:
        """Return a snapshot of all points."""
        return tuple(self._points)

    def add(
        self,
        metric: str,
        value: float,
        tags: Mapping[str, str] | None,
        rate_type: RateType,
        unit: str,
        description: str,
    ) -> bool:
        """Append a point, return False if it was dropped."""
        point_tags = {**self._default_tags, **(tags or {})}

        if not VALID_NAME.match(metric):
            _LOGGER.debug("Drop point with invalid metric name %r", metric)
            return False
        for key, tag_value in point_tags.items():
            if not VALID_NAME.match(key) or not VALID_NAME.match(tag_value):
                _LOGGER.debug("Drop %s with invalid tag %s=%s", metric, key, tag_value)
                return False

        point = DataPoint(
            metric,
            float(value),
            point_tags,
            rate_type,
            unit,
            description,
            self._clock(),
        )
        if point.key in self._seen:
            _LOGGER.debug("Drop duplicate point %r", point)
            return False

        self._seen.add(point.key)
        self._points.append(point)
        return True

    def __len__(self) -> int:
        """Return the number of points."""
        return len(self._points)

    def __iter__(self) -> Iterator[DataPoint]:
        """Iterate over points in insertion order."""
        return iter(self._points)

    @overload
    def __getitem__(self, index: int) -> DataPoint: ...

    @overload
    def __getitem__(self, index: slice) -> list[DataPoint]: ...

    def __getitem__(self, index: int | slice) -> DataPoint | list[DataPoint]:
        """Return point(s) by position."""
        return self._points[index]

    def __eq__(self, other: object) -> bool:
        """Compare the points of two batches."""
        if not isinstance(other, Batch):
            return NotImplemented
        return self._points == other._points

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """Return string representation for logger."""
        return f"Batch(collector={self._collector!r}, points={len(self)})"
