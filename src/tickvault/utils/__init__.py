"""Shared utilities. 🛠️

- **batch_processing**: Fixed-size batching for writes and downloads
- **timestamps**: UTC day windows and epoch conversions
"""

from tickvault.utils.batch_processing import batch_generator, count_batches
from tickvault.utils.timestamps import (
    day_window,
    count_days,
    format_iso_ms,
    from_epoch_ms,
    get_utc_timestamp,
    iter_days,
    parse_iso_date,
    to_epoch_ms,
    utc_midnight,
)

__all__ = [
    # Batch processing 📦
    "batch_generator",
    "count_batches",
    # Timestamps ⏰
    "day_window",
    "count_days",
    "format_iso_ms",
    "from_epoch_ms",
    "get_utc_timestamp",
    "iter_days",
    "parse_iso_date",
    "to_epoch_ms",
    "utc_midnight",
]
