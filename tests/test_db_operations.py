"""Tests for idempotent tick writes. 💾"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import MetaData, event, select
from sqlalchemy.dialects import mysql, postgresql

from tickvault.db.operations import (
    UpsertWriter,
    build_upsert,
    dedupe_by_timestamp,
    record_to_row,
)
from tickvault.db.schema import TableProvisioner, tick_table
from tickvault.exceptions import StorageError
from tickvault.models import TickRecord


def _rows(engine, symbol):
    table = tick_table(symbol, MetaData())
    with engine.connect() as conn:
        return conn.execute(select(table).order_by(table.c.Timestamp)).fetchall()


@pytest.fixture
def insert_counter(engine):
    """Count INSERT statements reaching the database."""
    statements: list[str] = []

    def _before_execute(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("INSERT"):
            statements.append(statement)

    event.listen(engine, "before_cursor_execute", _before_execute)
    yield statements
    event.remove(engine, "before_cursor_execute", _before_execute)


class TestUpsertWriter:
    """Test cases for UpsertWriter.write."""

    def test_empty_records_is_noop(self, engine):
        """Empty input succeeds without touching storage."""
        writer = UpsertWriter(engine)

        assert writer.write("eurusd", []) == 0
        assert writer.provisioner.table_exists("eurusd") is False

    def test_writes_records(self, engine, make_ticks):
        ticks = make_ticks(3)

        written = UpsertWriter(engine).write("eurusd", ticks)

        assert written == 3
        rows = _rows(engine, "eurusd")
        assert [r.Timestamp for r in rows] == [t.timestamp for t in ticks]
        assert rows[0].BidPrice == pytest.approx(ticks[0].bid_price)
        assert rows[0].AskVolume == pytest.approx(ticks[0].ask_volume)

    def test_rewrite_is_idempotent(self, engine, make_ticks):
        """Writing the same timestamps twice keeps one row each with the latest values."""
        writer = UpsertWriter(engine)
        first = make_ticks(5, price=1.1)
        second = make_ticks(5, price=1.3)

        writer.write("eurusd", first)
        writer.write("eurusd", second)

        rows = _rows(engine, "eurusd")
        assert len(rows) == 5
        assert [r.BidPrice for r in rows] == pytest.approx([t.bid_price for t in second])
        assert [r.AskPrice for r in rows] == pytest.approx([t.ask_price for t in second])

    def test_overlapping_writes_do_not_duplicate(self, engine, make_ticks):
        writer = UpsertWriter(engine)
        ticks = make_ticks(6)

        writer.write("eurusd", ticks[:4])
        writer.write("eurusd", ticks[2:])

        assert len(_rows(engine, "eurusd")) == 6

    def test_duplicate_timestamps_keep_last(self, engine, make_ticks, insert_counter):
        """Same-millisecond ticks in one batch collapse to a single row, last wins."""
        first = make_ticks(1, price=1.1)[0]
        second = make_ticks(1, price=1.3)[0]
        other = make_ticks(2)[1]

        written = UpsertWriter(engine).write("eurusd", [first, other, second])

        assert written == 2
        assert len(insert_counter) == 1
        rows = _rows(engine, "eurusd")
        assert [r.Timestamp for r in rows] == [first.timestamp, other.timestamp]
        assert rows[0].BidPrice == pytest.approx(second.bid_price)

    def test_chunk_boundary(self, engine, make_ticks, insert_counter):
        """One record more than the chunk size takes two writes, and all rows land."""
        writer = UpsertWriter(engine, chunk_size=3)

        writer.write("eurusd", make_ticks(4))

        assert len(insert_counter) == 2
        assert len(_rows(engine, "eurusd")) == 4

    def test_exact_chunk_size_is_single_write(self, engine, make_ticks, insert_counter):
        UpsertWriter(engine, chunk_size=4).write("eurusd", make_ticks(4))

        assert len(insert_counter) == 1

    def test_partial_failure_keeps_earlier_chunks(self, engine, make_ticks):
        """A failing later chunk raises, but earlier chunks stay committed."""
        ticks = make_ticks(5)
        broken = TickRecord(
            timestamp=ticks[3].timestamp,
            bid_price=None,  # type: ignore[arg-type]
            ask_price=1.0,
            bid_volume=1.0,
            ask_volume=1.0,
        )
        records = ticks[:3] + [broken] + ticks[4:]

        with pytest.raises(StorageError) as exc_info:
            UpsertWriter(engine, chunk_size=2).write("eurusd", records)

        assert exc_info.value.symbol == "eurusd"
        assert [r.Timestamp for r in _rows(engine, "eurusd")] == [t.timestamp for t in ticks[:2]]

    def test_ensures_table_once_per_call(self, engine, make_ticks):
        provisioner = TableProvisioner(engine)
        provisioner.ensure = MagicMock(wraps=provisioner.ensure)

        UpsertWriter(engine, provisioner, chunk_size=2).write("eurusd", make_ticks(5))

        provisioner.ensure.assert_called_once_with("eurusd")

    def test_table_creation_failure_raises(self, engine, make_ticks):
        provisioner = MagicMock()
        provisioner.ensure.side_effect = StorageError("no table", symbol="eurusd")

        with pytest.raises(StorageError):
            UpsertWriter(engine, provisioner).write("eurusd", make_ticks(2))

    def test_rejects_invalid_chunk_size(self, engine):
        with pytest.raises(ValueError):
            UpsertWriter(engine, chunk_size=0)


class TestBuildUpsert:
    """Test cases for dialect-specific upsert statements."""

    def test_mysql_uses_on_duplicate_key_update(self):
        table = tick_table("eurusd", MetaData())

        sql = str(build_upsert(table, "mysql").compile(dialect=mysql.dialect()))

        assert "ON DUPLICATE KEY UPDATE" in sql
        assert "BidPrice" in sql.split("ON DUPLICATE KEY UPDATE")[1]

    def test_postgres_uses_on_conflict(self):
        table = tick_table("eurusd", MetaData())

        sql = str(build_upsert(table, "postgresql").compile(dialect=postgresql.dialect()))

        assert 'ON CONFLICT ("Timestamp") DO UPDATE' in sql

    def test_unsupported_dialect(self):
        with pytest.raises(StorageError):
            build_upsert(tick_table("eurusd", MetaData()), "oracle")


def test_record_to_row(make_ticks):
    tick = make_ticks(1)[0]

    assert record_to_row(tick) == {
        "Timestamp": tick.timestamp,
        "BidPrice": tick.bid_price,
        "AskPrice": tick.ask_price,
        "BidVolume": tick.bid_volume,
        "AskVolume": tick.ask_volume,
    }


def test_dedupe_by_timestamp_keeps_first_seen_order(make_ticks):
    ticks = make_ticks(3)
    replacement = make_ticks(1, price=2.0)[0]

    deduped = dedupe_by_timestamp([ticks[0], ticks[1], replacement, ticks[2]])

    assert deduped == [replacement, ticks[1], ticks[2]]
