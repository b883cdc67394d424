"""Build collectors from configuration."""

from __future__ import annotations

from collections.abc import Callable
import json
from typing import Any, NotRequired, TypedDict

from ..collectors import Collector, memcached_collector
from ..exceptions import ConfigError, DuplicateCollectorError
from ..scheduler import CollectorRegistry, build_registry


class CollectorConfig(TypedDict):
    """Configuration of a single collector."""

    type: str
    name: NotRequired[str]
    address: NotRequired[str]
    interval: NotRequired[float]
    timeout: NotRequired[float]
    socket: NotRequired[bool]


COLLECTOR_TYPES: dict[str, Callable[..., Collector]] = {
    "memcached": memcached_collector,
}


def load_registry(config: str | list[CollectorConfig]) -> CollectorRegistry:
    """Create the collector registry from JSON text or parsed config."""
    if isinstance(config, str):
        try:
            data: Any = json.loads(config)
        except json.JSONDecodeError as err:
            raise ConfigError(f"Invalid JSON: {err}") from err
    else:
        data = config

    if not isinstance(data, list):
        raise ConfigError("Collector configuration must be a list")

    collectors: list[Collector] = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ConfigError(f"Invalid collector entry {entry!r}")
        options = dict(entry)
        kind = options.pop("type", None)
        if not isinstance(kind, str) or (factory := COLLECTOR_TYPES.get(kind)) is None:
            raise ConfigError(f"Unknown collector type {kind!r}")

        try:
            collectors.append(factory(**options))
        except (TypeError, ValueError) as err:
            raise ConfigError(f"Invalid {kind} collector: {err}") from err

    try:
        return build_registry(collectors)
    except DuplicateCollectorError as err:
        raise ConfigError(str(err)) from err
