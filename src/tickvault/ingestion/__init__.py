"""Resumable tick ingestion."""

from tickvault.ingestion.driver import (
    DriverState,
    IngestionDriver,
    ResumePosition,
    RunSummary,
    UnitResult,
    resolve_resume_position,
)

__all__ = [
    "DriverState",
    "IngestionDriver",
    "ResumePosition",
    "RunSummary",
    "UnitResult",
    "resolve_resume_position",
]
