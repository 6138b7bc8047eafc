"""Idempotent tick writes. 💾

Records are upserted on the ``Timestamp`` primary key: a colliding timestamp
overwrites the four value columns and never creates a duplicate row, which
makes re-running any unit of work safe.
"""

from typing import Sequence

from sqlalchemy import Table
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tickvault.db.schema import TIMESTAMP_COLUMN, VALUE_COLUMNS, TableProvisioner
from tickvault.exceptions import StorageError
from tickvault.logging_config import get_logger
from tickvault.models import TickRecord
from tickvault.utils import batch_generator, count_batches

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 1000


def record_to_row(record: TickRecord) -> dict:
    """Map a TickRecord onto the table's column names."""
    return {
        TIMESTAMP_COLUMN: record.timestamp,
        "BidPrice": record.bid_price,
        "AskPrice": record.ask_price,
        "BidVolume": record.bid_volume,
        "AskVolume": record.ask_volume,
    }


def dedupe_by_timestamp(records: Sequence[TickRecord]) -> list[TickRecord]:
    """Keep the last record for each timestamp, in first-seen timestamp order.

    One multi-row upsert may not touch the same key twice on PostgreSQL.
    """
    latest: dict[int, TickRecord] = {}
    for record in records:
        latest[record.timestamp] = record
    return list(latest.values())


def build_upsert(table: Table, dialect_name: str):
    """Build a dialect-native insert-or-update statement for ``table``.

    Args:
        table: Tick table definition.
        dialect_name: SQLAlchemy dialect name (mysql, mariadb, postgresql, sqlite).

    Returns:
        Insert statement to execute with a list of row dictionaries.

    Example:
        stmt = build_upsert(tick_table("eurusd", MetaData()), "postgresql")
        conn.execute(stmt, [record_to_row(r) for r in records])
    """
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql.insert(table)
        return stmt.on_duplicate_key_update(
            {name: stmt.inserted[name] for name in VALUE_COLUMNS}
        )

    if dialect_name in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
        stmt = insert(table)
        return stmt.on_conflict_do_update(
            index_elements=[table.c[TIMESTAMP_COLUMN]],
            set_={name: stmt.excluded[name] for name in VALUE_COLUMNS},
        )

    raise StorageError(f"Upsert is not supported for dialect {dialect_name!r}")


class UpsertWriter:
    """Writes batches of tick records into a symbol's table, idempotently."""

    def __init__(
        self,
        engine: Engine,
        provisioner: TableProvisioner | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self.engine = engine
        self.provisioner = provisioner or TableProvisioner(engine)
        self.chunk_size = chunk_size

    def write(self, symbol: str, records: Sequence[TickRecord]) -> int:
        """Upsert ``records`` into the symbol's table in fixed-size chunks. ⚡

        An empty ``records`` is a no-op that touches no storage. Otherwise the
        table is ensured once, then every chunk commits in its own transaction:
        if a later chunk fails, earlier chunks stay committed and the whole call
        raises.

        Args:
            symbol: Catalog symbol (also the table name).
            records: Tick records in any order, possibly empty.

        Returns:
            Number of rows written (one per distinct timestamp).

        Raises:
            StorageError: If table creation or any chunk fails.
        """
        if not records:
            logger.info(f"ℹ️  No data to upload for {symbol}")
            return 0

        records = dedupe_by_timestamp(records)
        table = self.provisioner.ensure(symbol)
        stmt = build_upsert(table, self.engine.dialect.name)
        total_chunks = count_batches(len(records), self.chunk_size)

        for chunk_num, chunk in enumerate(batch_generator(records, self.chunk_size), 1):
            rows = [record_to_row(r) for r in chunk]
            try:
                with self.engine.begin() as conn:
                    conn.execute(stmt, rows)
            except SQLAlchemyError as e:
                logger.error(
                    f"❌ Error uploading batch {chunk_num}/{total_chunks} for {symbol}: {e}"
                )
                raise StorageError(
                    f"Upsert into {symbol} failed at batch {chunk_num}/{total_chunks}: {e}",
                    symbol=symbol,
                ) from e

            logger.debug(
                f"📦 Uploaded batch {chunk_num}/{total_chunks} for {symbol} ({len(rows)} records)"
            )

        logger.info(f"✅ Uploaded {len(records):,} records for {symbol}")
        return len(records)
