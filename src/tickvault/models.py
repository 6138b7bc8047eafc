"""Core data model for TickVault. 🧱

- TickRecord: a single timestamped quote (natural key: timestamp)
- Checkpoint: the durable resume point of the ingestion pipeline
- UnitOutcome: result of one (date, symbol) unit of work
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


@dataclass(frozen=True)
class TickRecord:
    """A single tick quote. ``timestamp`` is milliseconds since the epoch (UTC)."""

    timestamp: int
    bid_price: float
    ask_price: float
    bid_volume: float
    ask_volume: float


@dataclass(frozen=True)
class Checkpoint:
    """Most recently completed unit of work.

    Every symbol up to and including ``last_symbol`` (in catalog order) has been
    processed for ``date``. ``last_symbol`` is None when nothing has been
    processed for ``date`` yet.
    """

    date: date
    last_symbol: str | None = None


class UnitOutcome(Enum):
    """Outcome of a single (date, symbol) unit of work."""

    SUCCESS = "success"  # Records fetched and written
    DEGRADED_EMPTY = "degraded_empty"  # Fetch returned nothing or failed
    FAILED = "failed"  # Storage write failed

    @property
    def advances_checkpoint(self) -> bool:
        return self is not UnitOutcome.FAILED
