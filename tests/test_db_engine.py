"""Tests for database engine creation."""

from unittest.mock import patch

from sqlalchemy.pool import QueuePool

from tickvault.config import Settings
from tickvault.db import create_db_engine


def test_mysql_engine_uses_queue_pool():
    settings = Settings(
        _env_file=None,
        db_host="localhost",
        db_user="ingest",
        db_password="pw",
        db_name="ticks",
        db_pool_size=4,
        db_max_overflow=2,
    )

    engine = create_db_engine(settings)
    try:
        assert engine.dialect.name == "mysql"
        assert isinstance(engine.pool, QueuePool)
        assert engine.pool.size() == 4
        assert engine.url.password == "pw"
    finally:
        engine.dispose()


def test_sqlite_engine(tmp_path):
    settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'ticks.db'}")

    engine = create_db_engine(settings)
    try:
        assert engine.dialect.name == "sqlite"
    finally:
        engine.dispose()


@patch("tickvault.db.engine.create_engine")
def test_sqlite_engine_keeps_default_pool(mock_create_engine, tmp_path):
    """Pool sizing settings only apply to server databases."""
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'ticks.db'}",
        db_pool_size=4,
    )

    create_db_engine(settings)

    kwargs = mock_create_engine.call_args.kwargs
    assert "poolclass" not in kwargs
    assert "pool_size" not in kwargs
    assert "pool_pre_ping" not in kwargs
