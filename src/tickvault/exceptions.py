"""Exception hierarchy for TickVault.

Only configuration errors are fatal. Fetch, storage and checkpoint errors are
raised at the component boundary and recovered per unit of work by the
ingestion driver.
"""


class TickvaultError(Exception):
    """Base exception for all TickVault errors."""


class ConfigurationError(TickvaultError):
    """Required configuration is missing or invalid (aborts the run)."""


class FetchError(TickvaultError):
    """Upstream data provider failed (transport, timeout, rate limit, bad payload)."""

    def __init__(self, message: str, symbol: str | None = None):
        super().__init__(message)
        self.symbol = symbol


class StorageError(TickvaultError):
    """Table creation or upsert failed."""

    def __init__(self, message: str, symbol: str | None = None):
        super().__init__(message)
        self.symbol = symbol


class CheckpointError(TickvaultError):
    """Checkpoint could not be persisted."""
