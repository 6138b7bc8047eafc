"""Database utilities for TickVault."""

from tickvault.db.engine import create_db_engine
from tickvault.db.operations import UpsertWriter, build_upsert, record_to_row
from tickvault.db.schema import TableProvisioner, tick_table

__all__ = [
    "create_db_engine",
    "UpsertWriter",
    "build_upsert",
    "record_to_row",
    "TableProvisioner",
    "tick_table",
]
