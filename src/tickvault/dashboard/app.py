"""Read-only monitoring API over the checkpoint, storage and run logs. 🖥️"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from tickvault.config import Settings
from tickvault.dashboard.stats import collect_progress, tail_latest_log
from tickvault.logging_config import get_logger
from tickvault.storage import CheckpointStore

logger = get_logger(__name__)


def create_app(
    settings: Settings,
    engine: Engine,
    checkpoint_store: CheckpointStore | None = None,
) -> FastAPI:
    """Build the dashboard application.

    Args:
        settings: Application settings (catalog, log directory, tail size).
        engine: Shared storage engine, used read-only.
        checkpoint_store: Checkpoint to expose. Defaults to settings.checkpoint_path.
    """
    store = checkpoint_store or CheckpointStore(settings.checkpoint_path)
    catalog = list(settings.symbols)

    app = FastAPI(
        title="TickVault Dashboard",
        description="Tick ingestion progress",
        version="1.0.0",
    )

    @app.get("/api/checkpoint")
    def get_checkpoint():
        """Latest persisted checkpoint"""
        checkpoint = store.read_raw()
        if checkpoint is None:
            return JSONResponse(status_code=404, content={"error": "Checkpoint not found"})
        return checkpoint

    @app.get("/api/symbols")
    def get_symbols():
        """Symbol catalog in processing order"""
        return catalog

    @app.get("/api/progress")
    def get_progress():
        """Per-symbol record counts and overall completion"""
        try:
            return collect_progress(engine, catalog)
        except Exception as e:
            logger.error(f"❌ Error retrieving progress data: {e}")
            return JSONResponse(
                status_code=500, content={"error": "Failed to retrieve progress data"}
            )

    @app.get("/api/logs")
    def get_logs():
        """Tail of the most recent run log"""
        try:
            return tail_latest_log(settings.log_path, settings.log_tail_lines)
        except OSError as e:
            logger.error(f"❌ Error retrieving logs: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to retrieve logs"})

    return app
