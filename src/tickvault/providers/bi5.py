"""Decoder for Dukascopy ``bi5`` hourly tick files. 🔄

A bi5 file is LZMA-compressed and holds one 20-byte big-endian record per tick:

    uint32  milliseconds since the start of the hour
    uint32  ask price in points (price * decimal factor)
    uint32  bid price in points
    float32 ask volume (millions)
    float32 bid volume (millions)
"""

import lzma
import struct
from typing import Any

import polars as pl

from tickvault.models import TickRecord

RECORD_FORMAT = ">3I2f"
RECORD_SIZE = struct.calcsize(RECORD_FORMAT)  # 20 bytes

TICK_SCHEMA: dict[str, Any] = {
    "timestamp": pl.Int64,
    "bid_price": pl.Float64,
    "ask_price": pl.Float64,
    "bid_volume": pl.Float64,
    "ask_volume": pl.Float64,
}

VOLUME_MULTIPLIERS = {
    "millions": 1.0,
    "thousands": 1_000.0,
    "units": 1_000_000.0,
}


def empty_ticks_frame() -> pl.DataFrame:
    """An empty DataFrame with the tick schema."""
    return pl.DataFrame(schema=TICK_SCHEMA)


def decode_bi5(
    payload: bytes,
    hour_start_ms: int,
    decimal_factor: float,
    volume_multiplier: float = VOLUME_MULTIPLIERS["units"],
) -> pl.DataFrame:
    """Decode one hourly bi5 payload into a tick DataFrame.

    Args:
        payload: Raw (compressed) file body. Empty means no ticks that hour.
        hour_start_ms: Epoch milliseconds of the hour the file covers.
        decimal_factor: Points per unit of price for the instrument.
        volume_multiplier: Factor converting the file's millions to the wanted unit.

    Returns:
        DataFrame matching TICK_SCHEMA, in file order.

    Raises:
        ValueError: If the payload is not valid LZMA or not a whole number of records.
    """
    if not payload:
        return empty_ticks_frame()

    try:
        data = lzma.decompress(payload)
    except lzma.LZMAError as e:
        raise ValueError(f"invalid bi5 payload: {e}") from e

    if len(data) % RECORD_SIZE != 0:
        raise ValueError(
            f"bi5 payload size {len(data)} is not a multiple of {RECORD_SIZE}"
        )

    rows = [
        (
            hour_start_ms + offset,
            bid / decimal_factor,
            ask / decimal_factor,
            round(bid_volume, 6) * volume_multiplier,
            round(ask_volume, 6) * volume_multiplier,
        )
        for offset, ask, bid, ask_volume, bid_volume in struct.iter_unpack(RECORD_FORMAT, data)
    ]
    return pl.DataFrame(rows, schema=TICK_SCHEMA, orient="row")


def encode_bi5(ticks: list[tuple[int, int, int, float, float]]) -> bytes:
    """Encode raw ``(ms_offset, ask, bid, ask_volume, bid_volume)`` tuples as bi5.

    Mainly useful for building fixtures.
    """
    raw = b"".join(struct.pack(RECORD_FORMAT, *tick) for tick in ticks)
    return lzma.compress(raw, format=lzma.FORMAT_ALONE)


def frame_to_records(df: pl.DataFrame) -> list[TickRecord]:
    """Convert a tick DataFrame into TickRecords."""
    return [
        TickRecord(
            timestamp=row["timestamp"],
            bid_price=row["bid_price"],
            ask_price=row["ask_price"],
            bid_volume=row["bid_volume"],
            ask_volume=row["ask_volume"],
        )
        for row in df.iter_rows(named=True)
    ]
