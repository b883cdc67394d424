"""Turn raw stat lines into normalized data points."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import aclosing
import re

from .datapoint import Batch
from .metadata import MetricRegistry
from .metrics import MetricsCollector
from .source import RawStatSource

DROP_MALFORMED = "malformed"
DROP_VALUE = "value"
DROP_UNKNOWN = "unknown"

# ASCII decimal float literal, optionally signed, or inf/nan
FLOAT_LITERAL = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE | re.ASCII,
)


class PointEmitter:
    """Resolve raw lines against a registry and append them to a batch.

    Lines that don't split into exactly a key and a value, values that
    are not floats and keys without metadata are skipped silently. Only
    stats with explicit metadata reach the batch.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        prefix: str = "",
        batch: Batch | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """Initialize point emitter."""
        self._registry = registry
        self._prefix = prefix
        self._metrics = metrics
        self.batch = batch if batch is not None else Batch()
        self.dropped: dict[str, int] = {
            DROP_MALFORMED: 0,
            DROP_VALUE: 0,
            DROP_UNKNOWN: 0,
        }

    def _drop(self, reason: str) -> bool:
        self.dropped[reason] += 1
        return False

    def emit_line(self, line: str) -> bool:
        """Process a single raw line, return True if a point was added."""
        fields = line.split()
        if len(fields) != 2:
            return self._drop(DROP_MALFORMED)

        raw_key, raw_value = fields
        if not FLOAT_LITERAL.fullmatch(raw_value):
            return self._drop(DROP_VALUE)
        value = float(raw_value)

        if (meta := self._registry.resolve(raw_key)) is None:
            return self._drop(DROP_UNKNOWN)

        return self.batch.add(
            self._prefix + (meta.metric or raw_key),
            value,
            meta.tags,
            meta.rate_type,
            meta.unit,
            meta.description,
        )

    def emit_lines(self, lines: Iterable[str]) -> Batch:
        """Process all lines and return the batch."""
        for line in lines:
            self.emit_line(line)
        return self.batch

    async def consume(self, source: RawStatSource) -> Batch:
        """Process every line of source and return the batch.

        Errors of the source propagate, the points read until then stay
        in self.batch.
        """
        try:
            async with aclosing(source.lines()) as lines:
                async for line in lines:
                    self.emit_line(line)
        finally:
            self.report_drops()
        return self.batch

    def report_drops(self) -> None:
        """Report skipped lines to the metrics collector."""
        if not self._metrics:
            return
        tags = {"registry": self._registry.name}
        for reason, count in self.dropped.items():
            if count:
                self._metrics.increment(
                    "tscollect.parser.dropped",
                    count,
                    {**tags, "reason": reason},
                )


def parse_lines(
    lines: Iterable[str],
    registry: MetricRegistry,
    prefix: str = "",
    batch: Batch | None = None,
) -> Batch:
    """Parse raw lines into a new batch."""
    return PointEmitter(registry, prefix, batch).emit_lines(lines)
