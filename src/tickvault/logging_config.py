"""Centralized logging configuration for TickVault.

All components log through the standard ``logging`` module. ``setup_logging``
registers two sinks on the root logger: the console (rich) and, when a log
directory is given, an append-only file created fresh for every run.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from rich.logging import RichHandler

from tickvault.utils.timestamps import get_utc_timestamp

LOG_FILE_PREFIX = "data_import_"
FILE_FORMAT = "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"


class _UTCFormatter(logging.Formatter):
    """Formatter writing ISO-8601 UTC timestamps with milliseconds."""

    def formatTime(self, record, datefmt=None):  # noqa: N802
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"


def run_log_filename(now: datetime | None = None) -> str:
    """Build the per-run log file name.

    Example:
        >>> run_log_filename(datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc))
        'data_import_2024-01-01T12-30-00Z.log'
    """
    now = now or get_utc_timestamp()
    return f"{LOG_FILE_PREFIX}{now.strftime('%Y-%m-%dT%H-%M-%SZ')}.log"


def setup_logging(level: int = logging.INFO, log_dir: str | None = None) -> Path | None:
    """Configure logging with rich handler for the entire application.

    Args:
        level: Logging level (default: logging.INFO).
        log_dir: Directory for the per-run log file. No file sink when None.

    Returns:
        Path of the log file for this run, or None when file logging is off.
    """
    # Detect if we're running in pytest
    is_pytest = "pytest" in sys.modules

    if is_pytest:
        # Use basic handler for pytest to avoid ANSI code issues
        console: logging.Handler = logging.StreamHandler()
        console.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(message)s", datefmt="%H:%M:%S")
        )
    else:
        console = RichHandler(rich_tracebacks=True, markup=False, show_path=False)
        console.setFormatter(logging.Formatter("%(message)s"))

    handlers: list[logging.Handler] = [console]
    log_file: Path | None = None

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / run_log_filename()
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(_UTCFormatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    return log_file


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given module name.

    Args:
        name: Name of the module (typically __name__).

    Returns:
        logging.Logger: Configured logger instance.
    """
    return logging.getLogger(name)
