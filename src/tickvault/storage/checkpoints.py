"""Checkpoint tracking for resumable ingestion.

The checkpoint is a single-slot JSON file, fully overwritten after every
completed unit of work:

    {"date": "2024-01-01T00:00:00.000Z", "lastSymbol": "gbpusd"}
"""

import json
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Literal

from tickvault.exceptions import CheckpointError
from tickvault.logging_config import get_logger
from tickvault.models import Checkpoint
from tickvault.utils.timestamps import format_iso_ms, parse_iso_date, utc_midnight

logger = get_logger(__name__)

LoadStatus = Literal["unknown", "loaded", "missing", "corrupt"]


def checkpoint_to_dict(checkpoint: Checkpoint) -> dict:
    """Serialize a checkpoint to its persisted JSON form."""
    return {
        "date": format_iso_ms(utc_midnight(checkpoint.date)),
        "lastSymbol": checkpoint.last_symbol,
    }


def checkpoint_from_dict(data: dict) -> Checkpoint:
    """Parse the persisted JSON form.

    Raises:
        ValueError: If required fields are missing or malformed.
    """
    if not isinstance(data, dict):
        raise ValueError("checkpoint must be a JSON object")
    raw_date = data.get("date")
    if not isinstance(raw_date, str):
        raise ValueError("checkpoint 'date' must be an ISO-8601 string")
    last_symbol = data.get("lastSymbol")
    if last_symbol is not None and not isinstance(last_symbol, str):
        raise ValueError("checkpoint 'lastSymbol' must be a string or null")
    return Checkpoint(date=parse_iso_date(raw_date), last_symbol=last_symbol or None)


class CheckpointStore:
    """Persists and restores the pipeline's resume point on the local filesystem."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.last_status: LoadStatus = "unknown"

    def load(self) -> Checkpoint | None:
        """Load the checkpoint.

        Absence is a normal first-run condition and is logged at INFO. An
        unreadable or malformed file is logged at WARNING. Both return None,
        meaning "start from the beginning"; ``last_status`` tells them apart.

        Example:
            >>> store = CheckpointStore("checkpoint.json")
            >>> checkpoint = store.load()
            >>> store.last_status
            'missing'
        """
        if not self.path.exists():
            self.last_status = "missing"
            logger.info(f"ℹ️  No checkpoint found at {self.path}, starting from the beginning")
            return None

        try:
            checkpoint = checkpoint_from_dict(json.loads(self.path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            self.last_status = "corrupt"
            logger.warning(
                f"⚠️  Checkpoint at {self.path} is unreadable ({e}), starting from the beginning"
            )
            return None

        self.last_status = "loaded"
        logger.info(
            f"📖 Checkpoint loaded: {checkpoint.date.isoformat()}, "
            f"last symbol: {checkpoint.last_symbol}"
        )
        return checkpoint

    def read_raw(self) -> dict | None:
        """Return the persisted JSON as-is, or None if missing/unreadable."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def save(self, day: date, symbol: str) -> Checkpoint:
        """Atomically overwrite the checkpoint with (day, symbol).

        Writes to a temporary sibling file and renames it over the target so a
        crash mid-write never leaves a truncated checkpoint behind.

        Raises:
            CheckpointError: If the file cannot be written.
        """
        checkpoint = Checkpoint(date=day, last_symbol=symbol)
        payload = json.dumps(checkpoint_to_dict(checkpoint), indent=2)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.chmod(tmp_name, 0o644)  # mkstemp creates 0600
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"❌ Failed to save checkpoint {day.isoformat()}/{symbol}: {e}")
            raise CheckpointError(f"Failed to save checkpoint to {self.path}: {e}") from e

        logger.info(f"💾 Checkpoint saved: {day.isoformat()}, last symbol: {symbol}")
        return checkpoint
