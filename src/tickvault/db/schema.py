"""Per-symbol tick tables. 🗄️

One table per catalog symbol, named after the symbol, created lazily on the
first write attempt and never dropped by TickVault:

    Timestamp  BIGINT  PRIMARY KEY   (ms since epoch)
    BidPrice   FLOAT   NOT NULL
    AskPrice   FLOAT   NOT NULL
    BidVolume  FLOAT   NOT NULL
    AskVolume  FLOAT   NOT NULL
"""

import re

from sqlalchemy import BigInteger, Column, Float, MetaData, Table, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateTable

from tickvault.exceptions import StorageError
from tickvault.logging_config import get_logger

logger = get_logger(__name__)

TIMESTAMP_COLUMN = "Timestamp"
VALUE_COLUMNS = ("BidPrice", "AskPrice", "BidVolume", "AskVolume")

_TABLE_NAME = re.compile(r"^[a-z][a-z0-9]*$")


def validate_table_name(symbol: str) -> str:
    """Reject symbols that are not safe to use as table names."""
    if not _TABLE_NAME.match(symbol):
        raise StorageError(f"Invalid symbol for table name: {symbol!r}", symbol=symbol)
    return symbol


def tick_table(symbol: str, metadata: MetaData) -> Table:
    """Return the Table definition for ``symbol``, registering it in ``metadata`` once."""
    validate_table_name(symbol)
    if symbol in metadata.tables:
        return metadata.tables[symbol]
    return Table(
        symbol,
        metadata,
        Column(TIMESTAMP_COLUMN, BigInteger, primary_key=True, autoincrement=False),
        *(Column(name, Float, nullable=False) for name in VALUE_COLUMNS),
    )


class TableProvisioner:
    """Ensures a symbol's storage table exists before writes."""

    def __init__(self, engine: Engine, metadata: MetaData | None = None):
        self.engine = engine
        self.metadata = metadata or MetaData()

    def table(self, symbol: str) -> Table:
        """Table definition for ``symbol`` (no I/O)."""
        return tick_table(symbol, self.metadata)

    def ensure(self, symbol: str) -> Table:
        """Create the symbol's table if it does not already exist (idempotent). ✨

        Raises:
            StorageError: If the table cannot be created.
        """
        table = self.table(symbol)
        try:
            with self.engine.begin() as conn:
                conn.execute(CreateTable(table, if_not_exists=True))
        except SQLAlchemyError as e:
            logger.error(f"❌ Error creating table for {symbol}: {e}")
            raise StorageError(f"Failed to create table {symbol}: {e}", symbol=symbol) from e

        logger.debug(f"✅ Table for {symbol} ensured")
        return table

    def table_exists(self, symbol: str) -> bool:
        """Check whether the symbol's table exists, without creating it."""
        validate_table_name(symbol)
        return inspect(self.engine).has_table(symbol)
