"""Dashboard server entry point. 🖥️"""

import argparse
import sys

import uvicorn

from tickvault.dashboard.app import create_app
from tickvault.db import create_db_engine
from tickvault.exceptions import ConfigurationError
from tickvault.ingestion.main import load_settings
from tickvault.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def cli(argv: list[str] | None = None) -> int:  # pragma: no cover
    """CLI entry point with argument parsing."""
    parser = argparse.ArgumentParser(description="Serve the ingestion dashboard API")
    parser.add_argument("--host", help="Bind address (default: DASHBOARD_HOST)")
    parser.add_argument("--port", type=int, help="Port (default: DASHBOARD_PORT)")
    args = parser.parse_args(argv)

    setup_logging()

    try:
        settings = load_settings(dashboard_host=args.host, dashboard_port=args.port)
        settings.require_database()
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        return 1

    engine = create_db_engine(settings)
    try:
        app = create_app(settings, engine)
        logger.info(
            f"🌐 Dashboard running on http://{settings.dashboard_host}:{settings.dashboard_port}"
        )
        uvicorn.run(app, host=settings.dashboard_host, port=settings.dashboard_port)
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(cli())
