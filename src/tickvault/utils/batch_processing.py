"""Batch processing utilities. 🚀

Used to bound the size of any single storage write and to pace hourly
downloads from the data provider.
"""

from typing import Iterator, Sequence, TypeVar

T = TypeVar("T")


def batch_generator(items: Sequence[T], batch_size: int) -> Iterator[Sequence[T]]:
    """Generate batches from a sequence of items. 📦

    Yields consecutive slices of the input with the specified batch size.
    The last batch may be smaller if len(items) is not evenly divisible by batch_size.

    Args:
        items: Sequence of items to batch.
        batch_size: Number of items per batch (must be >= 1).

    Yields:
        Slices of size batch_size (or smaller for the final batch).

    Example:
        >>> symbols = ["eurusd", "gbpusd", "audusd", "nzdusd"]
        >>> for batch in batch_generator(symbols, 3):
        ...     print(batch)
        ['eurusd', 'gbpusd', 'audusd']
        ['nzdusd']
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    for i in range(0, len(items), batch_size):
        yield items[i : i + batch_size]


def count_batches(total: int, batch_size: int) -> int:
    """Number of batches ``batch_generator`` yields for ``total`` items."""
    return (total + batch_size - 1) // batch_size
