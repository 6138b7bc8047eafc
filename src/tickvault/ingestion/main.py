"""Tick ingestion entry point. 📥"""

import argparse
import logging
import sys
from datetime import date

from pydantic import ValidationError
from sqlalchemy.engine import Engine

from tickvault.config import Settings
from tickvault.db import TableProvisioner, UpsertWriter, create_db_engine
from tickvault.exceptions import ConfigurationError
from tickvault.ingestion.driver import IngestionDriver, RunSummary
from tickvault.logging_config import get_logger, setup_logging
from tickvault.providers import DukascopyClient, TickFetcher
from tickvault.storage import CheckpointStore

logger = get_logger(__name__)


def load_settings(**overrides) -> Settings:
    """Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If the resulting settings are invalid.
    """
    try:
        return Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def log_connection_settings(settings: Settings) -> None:
    """Log connection parameters without revealing the password."""
    logger.info("🔧 Storage configuration:")
    if settings.database_url is not None:
        logger.info("   DATABASE_URL: set (not showing value)")
        return
    logger.info(f"   DB_HOST: {settings.db_host or 'not set'}")
    logger.info(f"   DB_PORT: {settings.db_port}")
    logger.info(f"   DB_USER: {settings.db_user or 'not set'}")
    logger.info(f"   DB_NAME: {settings.db_name or 'not set'}")
    password_set = bool(settings.db_password.get_secret_value())
    logger.info(f"   DB_PASSWORD: {'set (not showing value)' if password_set else 'not set'}")


def build_driver(
    settings: Settings,
    engine: Engine,
    fetcher: TickFetcher | None = None,
) -> IngestionDriver:
    """Wire the driver's collaborators from settings and a shared engine."""
    provisioner = TableProvisioner(engine)
    writer = UpsertWriter(engine, provisioner, chunk_size=settings.db_chunk_size)
    return IngestionDriver(
        fetcher=fetcher or DukascopyClient.from_settings(settings),
        writer=writer,
        checkpoint_store=CheckpointStore(settings.checkpoint_path),
        catalog=settings.symbols,
        start_date=settings.start_date,
        end_date=settings.end_date,
        show_progress=settings.show_progress,
        hold_checkpoint_on_failure=settings.hold_checkpoint_on_failure,
        provisioner=provisioner,
    )


def main(settings: Settings, fetcher: TickFetcher | None = None) -> RunSummary:
    """Run the ingestion pipeline to completion.

    Raises:
        ConfigurationError: If required configuration is missing.
    """
    log_connection_settings(settings)
    settings.require_database()

    logger.info("🚀 Starting data import process")
    engine = create_db_engine(settings)
    try:
        return build_driver(settings, engine, fetcher).run()
    finally:
        engine.dispose()
        logger.info("🔌 Database connection pool closed")


def cli(argv: list[str] | None = None) -> int:  # pragma: no cover
    """CLI entry point with argument parsing."""
    parser = argparse.ArgumentParser(description="Ingest historical tick data")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        help="First day to ingest when no checkpoint exists (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end-date",
        type=date.fromisoformat,
        help="Last day to ingest, inclusive (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--symbols",
        type=lambda value: [s.strip() for s in value.split(",") if s.strip()],
        help="Comma-separated symbol catalog, in processing order",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO

    try:
        settings = load_settings(
            start_date=args.start_date,
            end_date=args.end_date,
            symbols=args.symbols,
        )
    except ConfigurationError as e:
        setup_logging(level)
        logger.error(f"❌ {e}")
        return 1

    log_file = setup_logging(level, settings.log_path)
    logger.info(f"📝 Logging to {log_file}")

    try:
        main(settings)
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        logger.error("Please make sure your .env file contains DB_HOST, DB_USER, DB_PASSWORD and DB_NAME")
        return 1
    except Exception:
        logger.exception("❌ Fatal error in data import process")
        return 1

    logger.info("✅ Data import process completed successfully")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(cli())
