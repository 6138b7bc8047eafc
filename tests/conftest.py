"""Shared pytest fixtures for the TickVault test suite."""

from datetime import date, datetime
from typing import Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from tickvault.models import TickRecord
from tickvault.storage import CheckpointStore
from tickvault.utils import to_epoch_ms, utc_midnight


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield eng
    eng.dispose()


@pytest.fixture
def checkpoint_store(tmp_path) -> CheckpointStore:
    return CheckpointStore(tmp_path / "checkpoint.json")


@pytest.fixture
def make_ticks() -> Callable[..., list[TickRecord]]:
    """Factory fixture returning ``count`` ticks one second apart."""

    def _make(
        count: int,
        day: date = date(2024, 1, 1),
        price: float = 1.1,
        volume: float = 1.5,
    ) -> list[TickRecord]:
        start = to_epoch_ms(utc_midnight(day))
        return [
            TickRecord(
                timestamp=start + idx * 1_000,
                bid_price=price + idx * 0.0001,
                ask_price=price + idx * 0.0001 + 0.0002,
                bid_volume=volume,
                ask_volume=volume + 0.5,
            )
            for idx in range(count)
        ]

    return _make


class FakeFetcher:
    """In-memory fetch adapter keyed by (symbol, day).

    Values are lists of TickRecord or an Exception instance to raise.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, datetime, datetime]] = []

    def fetch(self, symbol: str, from_time: datetime, to_time: datetime) -> list[TickRecord]:
        self.calls.append((symbol, from_time, to_time))
        response = self.responses.get((symbol, from_time.date()), [])
        if isinstance(response, Exception):
            raise response
        return list(response)


@pytest.fixture
def fake_fetcher_factory() -> Callable[[dict | None], FakeFetcher]:
    return FakeFetcher
