"""Read-only monitoring dashboard."""

from tickvault.dashboard.app import create_app

__all__ = ["create_app"]
