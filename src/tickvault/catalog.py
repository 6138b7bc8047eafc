"""Symbol catalog: the fixed, ordered list of instruments to ingest. 📋

Resume logic computes the successor of the checkpointed symbol from the
*current* catalog order, so the order must stay stable across runs.
"""

from typing import Sequence

DEFAULT_SYMBOLS: tuple[str, ...] = (
    # Forex majors
    "eurusd",
    "gbpusd",
    "audusd",
    "nzdusd",
    "usdcad",
    "usdchf",
    "usdjpy",
    # Metals
    "xagusd",
    "xauusd",
    # Crypto
    "adausd",
    "aveusd",
    "batusd",
    "btcchf",
    "btceur",
    "btcgbp",
    "btcusd",
    "ethchf",
    "etheur",
    "ethgbp",
    "ethusd",
    "cmpusd",
    "dshusd",
    "enjusd",
    "eosusd",
    "lnkusd",
    "ltcchf",
    "ltceur",
    "ltcgbp",
    "ltcusd",
    "matusd",
    "mkrusd",
    "trxusd",
    "uniusd",
    "xlmchf",
    "xlmeur",
    "xlmgbp",
    "xlmusd",
)


def symbol_index(catalog: Sequence[str], symbol: str | None) -> int | None:
    """Return the position of ``symbol`` in ``catalog``, or None if absent.

    Example:
        >>> symbol_index(["eurusd", "gbpusd"], "gbpusd")
        1
        >>> symbol_index(["eurusd", "gbpusd"], "btcusd") is None
        True
    """
    if symbol is None:
        return None
    try:
        return list(catalog).index(symbol)
    except ValueError:
        return None
