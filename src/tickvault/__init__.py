"""TickVault: resumable historical tick ingestion."""

__version__ = "0.1.0"
