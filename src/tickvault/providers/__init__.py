"""Historical tick data providers."""

from tickvault.providers.base import TickFetcher
from tickvault.providers.dukascopy import DukascopyClient

__all__ = ["TickFetcher", "DukascopyClient"]
