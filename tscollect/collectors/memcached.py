"""Memcached stats collector."""

from __future__ import annotations

from functools import partial

from ..const import (
    DEFAULT_INTERVAL,
    DEFAULT_MEMCACHED_ADDRESS,
    DEFAULT_TIMEOUT,
    MEMCACHED_TOOL,
)
from ..datapoint import clean_metric_name
from ..metadata import MetricMeta, MetricRegistry, RateType, Unit
from ..source import CommandSource, RawStatSource, SocketSource, command_available
from .base import StatCollector

PREFIX = "memcached."


def _command(
    tag_type: str,
    cache: str,
    description: str,
) -> MetricMeta:
    return MetricMeta(
        RateType.COUNTER,
        Unit.OPERATION,
        description,
        metric="commands",
        tags={"type": tag_type, "cache": cache},
    )


MEMCACHED_META = MetricRegistry(
    {
        "accepting_conns": MetricMeta(
            RateType.GAUGE,
            Unit.BOOL,
            "Indicates if the memcache instance is currently accepting connections.",
        ),
        "auth_cmds": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The number of authentication commands handled "
            "(includes both success or failure).",
        ),
        "auth_errors": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The number of of failed authentications.",
        ),
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
        "cas_badval": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The number of CAS requests for which a key was found, "
            "but the CAS value did not match.",
        ),
        "cas_hits": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The number of successful CAS requests.",
        ),
        "cas_misses": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The number of CAS requests against missing keys.",
        ),
        "cmd_flush": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The cumulative number of flush requests.",
        ),
        "cmd_set": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The cumulative number of storage requests.",
        ),
        "cmd_get": MetricMeta(
            RateType.COUNTER,
            Unit.OPERATION,
            "The cumulative number of retrieval requests.",
        ),
        "conn_yields": MetricMeta(
            RateType.COUNTER,
            Unit.YIELD,
            "The number of times any connection yielded to another "
            "due to hitting the memcached -R limit.",
        ),
        "connection_structures": MetricMeta(
            RateType.GAUGE,
            "Connection Structures",
            "The number of connection structures allocated by the server.",
        ),
        "curr_connections": MetricMeta(
            RateType.GAUGE,
            Unit.CONNECTION,
            "The current number of open connections.",
        ),
        "curr_items": MetricMeta(
            RateType.GAUGE,
            Unit.ITEM,
            "The current number of items in the cache.",
        ),
        "decr_hits": _command(
            "decr",
            "hit",
            "The total number of decr command cache hits "
            "(decr decreases a stored value by 1).",
        ),
        "decr_misses": _command(
            "decr",
            "miss",
            "The total number of decr command cache misses "
            "(decr decreases a stored value by 1).",
        ),
        "incr_hits": _command(
            "incr",
            "hit",
            "The total number of incr command cache hits "
            "(incr increases a stored value by 1).",
        ),
        "incr_misses": _command(
            "incr",
            "miss",
            "The total number of incr command cache misses "
            "(incr increases a stored value by 1).",
        ),
        "get_hits": _command(
            "get",
            "hit",
            "The total number of successful get commands (cache hits) since startup.",
        ),
        "get_misses": _command(
            "get",
            "miss",
            "The total number of failed get requests because nothing was cached "
            "for this key or the cached value was too old.",
        ),
        "delete_hits": _command(
            "delete",
            "hit",
            "The total number of successful delete commands (cache hits) since startup.",
        ),
        "delete_misses": _command(
            "delete",
            "miss",
            "The total number of delete commands for keys not existing "
            "within the cache.",
        ),
        "evictions": MetricMeta(
            RateType.COUNTER,
            Unit.EVICTION,
            "The Number of objects removed from the cache to free up memory for new "
            "items because Memcached reached it's maximum memory setting "
            "(limit_maxbytes).",
        ),
        "limit_maxbytes": MetricMeta(
            RateType.GAUGE,
            Unit.BYTES,
            "The max allowed size of the cache.",
            metric="cache_limit",
        ),
        "bytes": MetricMeta(
            RateType.GAUGE,
            Unit.BYTES,
            "The current size of the cache.",
            metric="cache_size",
        ),
        "listen_disabled_num": MetricMeta(
            RateType.COUNTER,
            Unit.CONNECTION,
            "The number of denied connection attempts because memcached "
            "reached it's configured connection limit.",
            metric="failed_connections",
        ),
        "threads": MetricMeta(
            RateType.GAUGE,
            Unit.THREAD,
            "The current number of threads.",
        ),
        "total_connections": MetricMeta(
            RateType.COUNTER,
            Unit.CONNECTION,
            "The total number of successful connect attempts.",
        ),
        "total_items": MetricMeta(
            RateType.COUNTER,
            Unit.ITEM,
            "The total number of items ever stored.",
        ),
    },
    name="memcached",
)


def _socket_source(host: str, port: int) -> RawStatSource:
    """Ask memcached directly with the text protocol."""
    return SocketSource(
        host,
        port,
        b"stats\r\n",
        end_marker="END",
        strip_prefix="STAT",
    )


def memcached_collector(
    address: str = DEFAULT_MEMCACHED_ADDRESS,
    *,
    name: str | None = None,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
    socket: bool = False,
) -> StatCollector:
    """Create a collector for a memcached instance.

    By default the stats are read through memcached-tool, with socket=True
    the collector talks to memcached itself.
    """
    tags: dict[str, str] = {}
    if address != DEFAULT_MEMCACHED_ADDRESS:
        tags["instance"] = clean_metric_name(address)
    if name is None:
        name = "memcached" if not tags else f"memcached_{tags['instance']}"

    if socket:
        host, _, port = address.rpartition(":")
        if not host or not port.isdigit():
            raise ValueError(f"Invalid memcached address {address!r}")
        return StatCollector(
            name,
            MEMCACHED_META,
            partial(_socket_source, host, int(port)),
            prefix=PREFIX,
            interval=interval,
            timeout=timeout,
            tags=tags,
        )

    return StatCollector(
        name,
        MEMCACHED_META,
        partial(CommandSource, MEMCACHED_TOOL, address, "stats"),
        prefix=PREFIX,
        interval=interval,
        timeout=timeout,
        tags=tags,
        enabled=partial(command_available, MEMCACHED_TOOL),
    )
