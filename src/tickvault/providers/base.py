"""Fetch adapter contract. 🔌"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from tickvault.models import TickRecord


@runtime_checkable
class TickFetcher(Protocol):
    """Anything that can return historical ticks for a symbol and time window."""

    def fetch(self, symbol: str, from_time: datetime, to_time: datetime) -> list[TickRecord]:
        """Return ticks with ``from_time <= timestamp < to_time``, in timestamp order.

        Returns an empty list when the provider has no data for the window.

        Raises:
            FetchError: On transport or provider failures.
        """
        ...
