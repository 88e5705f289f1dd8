"""Workspace checkpoints and rollback."""

from .manager import CheckpointManager
from .snapshot import DEFAULT_IGNORE, WorkspaceSnapshotter

__all__ = ["CheckpointManager", "WorkspaceSnapshotter", "DEFAULT_IGNORE"]
