"""Base interface for the agent's own metrics."""

from abc import ABC, abstractmethod


class MetricsCollector(ABC):
    """Sink for metrics about collector runs, skips and parser drops.

    Tags are passed as a plain dict, for example ``{"collector": "memcached"}``.
    """

    @abstractmethod
    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Store the current value of name, replacing the previous one."""

    @abstractmethod
    def increment(
        self,
        name: str,
        value: float = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Add value to the counter name."""

    @abstractmethod
    def timing(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration of name in milliseconds."""
