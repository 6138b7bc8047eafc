"""Read-only progress statistics for the dashboard. 📊

Nothing here creates tables or touches the checkpoint: the dashboard only
observes what the ingestion run has produced.
"""

from pathlib import Path
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tickvault.db.schema import TIMESTAMP_COLUMN, TableProvisioner
from tickvault.logging_config import get_logger
from tickvault.utils import format_iso_ms, from_epoch_ms

logger = get_logger(__name__)


def _percent(part: int, whole: int) -> int:
    """Percentage rounded half up."""
    return int(part * 100 / whole + 0.5) if whole else 0


def _iso_or_none(value: int | None) -> str | None:
    return format_iso_ms(from_epoch_ms(int(value))) if value is not None else None


def symbol_stats(engine: Engine, provisioner: TableProvisioner, symbol: str) -> dict:
    """Record count and timestamp range for one symbol's table."""
    stats = {
        "symbol": symbol,
        "total_records": 0,
        "oldest_date": None,
        "newest_date": None,
        "has_data": False,
    }

    try:
        if not provisioner.table_exists(symbol):
            return stats

        table = provisioner.table(symbol)
        timestamp = table.c[TIMESTAMP_COLUMN]
        with engine.connect() as conn:
            row = conn.execute(
                select(func.count(), func.min(timestamp), func.max(timestamp)).select_from(table)
            ).one()
    except SQLAlchemyError as e:
        logger.error(f"❌ Error getting stats for {symbol}: {e}")
        stats["error"] = str(e)
        return stats

    total, oldest, newest = row
    stats.update(
        total_records=int(total or 0),
        oldest_date=_iso_or_none(oldest),
        newest_date=_iso_or_none(newest),
        has_data=bool(total),
    )
    return stats


def collect_progress(engine: Engine, catalog: Sequence[str]) -> dict:
    """Per-symbol statistics plus aggregate completion across the catalog.

    ``completion_percentage`` is the share of catalog symbols whose table holds
    at least one record, rounded to a whole percent.

    Example:
        >>> progress = collect_progress(engine, ["eurusd", "gbpusd"])
        >>> progress["overall_stats"]["completion_percentage"]
        50
    """
    provisioner = TableProvisioner(engine)
    stats = [symbol_stats(engine, provisioner, symbol) for symbol in catalog]

    oldest = [s["oldest_date"] for s in stats if s["oldest_date"]]
    newest = [s["newest_date"] for s in stats if s["newest_date"]]
    tables_with_data = sum(1 for s in stats if s["has_data"])

    return {
        "symbol_stats": stats,
        "overall_stats": {
            "total_symbols": len(catalog),
            "tables_with_data": tables_with_data,
            "completion_percentage": _percent(tables_with_data, len(catalog)),
            "total_records": sum(s["total_records"] for s in stats),
            "date_range": {
                # Same-format ISO strings sort chronologically
                "from": min(oldest) if oldest else None,
                "to": max(newest) if newest else None,
            },
        },
    }


def tail_latest_log(log_dir: str | Path, lines: int = 100) -> dict:
    """Last ``lines`` non-blank lines of the most recently modified log file."""
    directory = Path(log_dir)
    files = [p for p in directory.iterdir() if p.is_file()] if directory.is_dir() else []
    if not files:
        return {"log_file": None, "recent_lines": []}

    latest = max(files, key=lambda p: p.stat().st_mtime)
    content = latest.read_text(encoding="utf-8", errors="replace")
    all_lines = [line for line in content.splitlines() if line.strip()]

    return {
        "log_file": latest.name,
        "total_lines": len(all_lines),
        "recent_lines": all_lines[-lines:],
    }
