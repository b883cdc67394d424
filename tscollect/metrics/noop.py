"""Metrics collector used when the agent metrics are disabled."""

from .base import MetricsCollector


class NoOpMetricsCollector(MetricsCollector):
    """Discard all agent metrics."""

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def increment(
        self,
        name: str,
        value: float = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
