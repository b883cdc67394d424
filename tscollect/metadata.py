"""Declarative metric metadata registry."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from types import MappingProxyType

from .exceptions import RegistryValidationError

_LOGGER = logging.getLogger(__name__)

# Characters the time-series backend accepts in metric names and tags.
VALID_NAME = re.compile(r"^[\w\-./]+$")


class RateType(str, Enum):
    """Semantic nature of a metric value."""

    COUNTER = "counter"
    GAUGE = "gauge"
    RATE = "rate"


class Unit(str, Enum):
    """Shared unit vocabulary."""

    BOOL = "bool"
    BYTES = "bytes"
    CONNECTION = "connections"
    COUNT = "count"
    EVICTION = "evictions"
    ITEM = "items"
    MILLISECOND = "milliseconds"
    OPERATION = "operations"
    PERCENT = "percent"
    SECOND = "seconds"
    THREAD = "threads"
    YIELD = "yields"

    def __str__(self) -> str:
        """Return the plain unit label."""
        return self.value


@dataclass(frozen=True, slots=True)
class MetricMeta:
    """Emission rule for a single raw stat key.

    metric: canonical name replacing the raw key, None keeps the raw key.
    tags: static tags for every point of this key, used to split one
    metric family (e.g. bytes read/written) by tag instead of by name.
    """

    rate_type: RateType
    unit: str
    description: str
    metric: str | None = None
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze the tag overlay."""
        object.__setattr__(self, "tags", MappingProxyType(dict(self.tags)))


class MetricRegistry(Mapping[str, MetricMeta]):
    """Immutable lookup table from raw stat key to MetricMeta.

    The registry is validated on construction and never changes afterwards,
    so collectors share it without locking.
    """

    __slots__ = ("_entries", "_name")

    def __init__(self, entries: Mapping[str, MetricMeta], *, name: str) -> None:
        """Initialize and validate the registry."""
        self._name = name
        self._entries: Mapping[str, MetricMeta] = MappingProxyType(dict(entries))
        self.validate()

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[str, MetricMeta]],
        *,
        name: str,
    ) -> MetricRegistry:
        """Create a registry from (raw_key, meta) pairs, rejecting duplicates."""
        entries: dict[str, MetricMeta] = {}
        duplicates: list[str] = []
        for raw_key, meta in pairs:
            if raw_key in entries:
                duplicates.append(f"duplicate key {raw_key!r}")
                continue
            entries[raw_key] = meta
        if duplicates:
            raise RegistryValidationError(name, duplicates)
        return cls(entries, name=name)

    @property
    def name(self) -> str:
        """Return the registry name."""
        return self._name

    def resolve(self, raw_key: str) -> MetricMeta | None:
        """Return the rule for raw_key or None if the key is unknown."""
        return self._entries.get(raw_key)

    def validate(self) -> None:
        """Check every entry and raise RegistryValidationError on problems."""
        problems: list[str] = []
        for raw_key, meta in self._entries.items():
            if not isinstance(raw_key, str) or not raw_key.strip():
                problems.append(f"empty raw key {raw_key!r}")
                continue
            if not isinstance(meta, MetricMeta):
                problems.append(f"{raw_key}: not a MetricMeta")
                continue
            if not isinstance(meta.rate_type, RateType):
                problems.append(f"{raw_key}: invalid rate type {meta.rate_type!r}")
            if not meta.unit:
                problems.append(f"{raw_key}: missing unit")
            if not meta.description or not meta.description.strip():
                problems.append(f"{raw_key}: missing description")
            if meta.metric is not None and not VALID_NAME.match(meta.metric):
                problems.append(f"{raw_key}: invalid metric name {meta.metric!r}")
            for key, value in meta.tags.items():
                if not isinstance(key, str) or not isinstance(value, str):
                    problems.append(f"{raw_key}: tag {key!r} is not a string pair")
                elif not VALID_NAME.match(key) or not VALID_NAME.match(value):
                    problems.append(f"{raw_key}: invalid tag {key}={value}")

        if problems:
            raise RegistryValidationError(self._name, problems)
        _LOGGER.debug("Registry %s loaded with %d keys", self._name, len(self))

    def __getitem__(self, raw_key: str) -> MetricMeta:
        """Return the rule for raw_key."""
        return self._entries[raw_key]

    def __iter__(self) -> Iterator[str]:
        """Iterate over the raw keys."""
        return iter(self._entries)

    def __len__(self) -> int:
        """Return the number of known keys."""
        return len(self._entries)

    def __repr__(self) -> str:
        """Return string representation for logger."""
        return f"MetricRegistry(name={self._name!r}, keys={len(self)})"
