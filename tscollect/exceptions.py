"""TSCollect Exceptions."""


class TSCollectError(Exception):
    """Base Exception for TSCollect exceptions."""


class RegistryValidationError(TSCollectError):
    """Metric metadata registry contains invalid entries."""

    def __init__(self, registry: str, problems: list[str]) -> None:
        """Initialize with all problems found."""
        super().__init__(f"Invalid metric registry {registry}: " + "; ".join(problems))
        self.registry = registry
        self.problems = problems


class SourceError(TSCollectError):
    """Raise if a raw stat source fails to produce its output."""


class CollectorError(TSCollectError):
    """Raise if a collector pass fails."""


class CollectorTimeoutError(CollectorError):
    """Raise if a collector pass does not finish in time."""


class CollectorBusyError(CollectorError):
    """Raise if a collector is started while still running."""


class DuplicateCollectorError(TSCollectError):
    """Raise if two collectors are registered with the same name."""


class ConfigError(TSCollectError):
    """Invalid collector configuration."""
