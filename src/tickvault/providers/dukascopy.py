"""Dukascopy historical tick data provider. 📡

Ticks are published as one LZMA-compressed ``bi5`` file per instrument-hour:

    {base_url}/{SYMBOL}/{YYYY}/{MM}/{DD}/{HH}h_ticks.bi5

where ``MM`` is the zero-based month. A missing file (HTTP 404) or an empty
body means the instrument had no ticks that hour.

Hourly files are downloaded in batches with a pause between batches to stay
polite to the datafeed. Transient HTTP errors (429, 5xx) are retried with
exponential backoff by the session's transport adapter; anything that still
fails is raised as FetchError.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Callable

import polars as pl
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from tickvault.config import Settings
from tickvault.exceptions import FetchError
from tickvault.logging_config import get_logger
from tickvault.models import TickRecord
from tickvault.providers.bi5 import (
    VOLUME_MULTIPLIERS,
    decode_bi5,
    empty_ticks_frame,
    frame_to_records,
)
from tickvault.utils import batch_generator, to_epoch_ms

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://datafeed.dukascopy.com/datafeed"
DEFAULT_DECIMAL_FACTOR = 100_000

# Points per unit of price; instruments not listed use DEFAULT_DECIMAL_FACTOR.
DECIMAL_FACTORS: dict[str, int] = {
    "usdjpy": 1_000,
    "xagusd": 1_000,
    "xauusd": 1_000,
    "btcchf": 10,
    "btceur": 10,
    "btcgbp": 10,
    "btcusd": 10,
    "ethchf": 10,
    "etheur": 10,
    "ethgbp": 10,
    "ethusd": 10,
    "mkrusd": 10,
    "aveusd": 100,
    "cmpusd": 100,
    "dshusd": 100,
    "ltcchf": 100,
    "ltceur": 100,
    "ltcgbp": 100,
    "ltcusd": 100,
    "batusd": 1_000,
    "enjusd": 1_000,
    "eosusd": 1_000,
    "lnkusd": 1_000,
    "matusd": 1_000,
    "uniusd": 1_000,
}


def decimal_factor_for(symbol: str, overrides: dict[str, int] | None = None) -> int:
    """Points-per-unit price factor for ``symbol``."""
    if overrides and symbol in overrides:
        return overrides[symbol]
    return DECIMAL_FACTORS.get(symbol, DEFAULT_DECIMAL_FACTOR)


def hour_url(base_url: str, symbol: str, hour: datetime) -> str:
    """Build the bi5 URL for one instrument-hour.

    Example:
        >>> hour_url(DEFAULT_BASE_URL, "eurusd", datetime(2024, 1, 5, 7, tzinfo=timezone.utc))
        'https://datafeed.dukascopy.com/datafeed/EURUSD/2024/00/05/07h_ticks.bi5'
    """
    return (
        f"{base_url.rstrip('/')}/{symbol.upper()}/"
        f"{hour.year:04d}/{hour.month - 1:02d}/{hour.day:02d}/{hour.hour:02d}h_ticks.bi5"
    )


def hours_in_window(from_time: datetime, to_time: datetime) -> list[datetime]:
    """UTC hour starts overlapping the half-open window [from_time, to_time)."""
    start = from_time.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)
    end = to_time.astimezone(timezone.utc)
    hours = []
    current = start
    while current < end:
        hours.append(current)
        current += timedelta(hours=1)
    return hours


def build_session(max_retries: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """Create a requests session retrying rate limits and server errors."""
    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class DukascopyClient:
    """Fetch adapter for the Dukascopy datafeed."""

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = DEFAULT_BASE_URL,
        batch_size: int = 20,
        pause_ms: int = 500,
        timeout: float = 30.0,
        volume_units: str = "units",
        decimal_factors: dict[str, int] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the client.

        Args:
            session: HTTP session. Defaults to one from ``build_session()``.
            base_url: Datafeed root URL.
            batch_size: Hourly files requested per batch.
            pause_ms: Pause between batches in milliseconds.
            timeout: Per-request timeout in seconds.
            volume_units: ``units``, ``thousands`` or ``millions``.
            decimal_factors: Per-symbol price factor overrides.
            sleep: Sleep function (injected by tests).
        """
        if volume_units not in VOLUME_MULTIPLIERS:
            raise ValueError(f"Unknown volume_units {volume_units!r}")
        self.session = session or build_session()
        self.base_url = base_url
        self.batch_size = batch_size
        self.pause_ms = pause_ms
        self.timeout = timeout
        self.volume_multiplier = VOLUME_MULTIPLIERS[volume_units]
        self.decimal_factors = decimal_factors or {}
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "DukascopyClient":
        """Build a client from application settings."""
        return cls(
            session=build_session(max_retries=settings.fetch_max_retries),
            base_url=settings.fetch_base_url,
            batch_size=settings.fetch_batch_size,
            pause_ms=settings.fetch_pause_ms,
            timeout=settings.fetch_timeout,
            volume_units=settings.volume_units,
            decimal_factors=settings.decimal_factors,
        )

    def _download_hour(self, symbol: str, hour: datetime) -> bytes:
        url = hour_url(self.base_url, symbol, hour)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request for {url} failed: {e}", symbol=symbol) from e

        if response.status_code == 404:
            return b""
        if response.status_code != 200:
            raise FetchError(
                f"Request for {url} failed with HTTP {response.status_code}", symbol=symbol
            )
        return response.content

    def _fetch_hour(self, symbol: str, hour: datetime, decimal_factor: int) -> pl.DataFrame:
        payload = self._download_hour(symbol, hour)
        try:
            return decode_bi5(
                payload, to_epoch_ms(hour), decimal_factor, self.volume_multiplier
            )
        except ValueError as e:
            raise FetchError(
                f"Could not decode {symbol} ticks for {hour.isoformat()}: {e}", symbol=symbol
            ) from e

    def fetch(self, symbol: str, from_time: datetime, to_time: datetime) -> list[TickRecord]:
        """Fetch ticks for ``symbol`` in the half-open window [from_time, to_time).

        Raises:
            FetchError: On transport failures or undecodable files.
        """
        logger.info(
            f"📥 Fetching data for {symbol} from {from_time.isoformat()} to {to_time.isoformat()}"
        )
        hours = hours_in_window(from_time, to_time)
        decimal_factor = decimal_factor_for(symbol, self.decimal_factors)

        frames: list[pl.DataFrame] = []
        for batch_num, batch in enumerate(batch_generator(hours, self.batch_size)):
            if batch_num > 0 and self.pause_ms > 0:
                self._sleep(self.pause_ms / 1000)
            frames.extend(self._fetch_hour(symbol, hour, decimal_factor) for hour in batch)

        df = pl.concat(frames) if frames else empty_ticks_frame()
        df = df.filter(
            (pl.col("timestamp") >= to_epoch_ms(from_time))
            & (pl.col("timestamp") < to_epoch_ms(to_time))
        ).sort("timestamp", maintain_order=True)
        # Same-millisecond ticks collapse to the last one published
        df = df.unique(subset="timestamp", keep="last", maintain_order=True)

        records = frame_to_records(df)
        logger.info(f"📊 Retrieved {len(records):,} records for {symbol}")
        return records
