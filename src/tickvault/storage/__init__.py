"""Local filesystem state for TickVault."""

from tickvault.storage.checkpoints import (
    CheckpointStore,
    checkpoint_from_dict,
    checkpoint_to_dict,
)

__all__ = [
    "CheckpointStore",
    "checkpoint_from_dict",
    "checkpoint_to_dict",
]
