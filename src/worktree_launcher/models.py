"""Data models for worktree records and their derived status."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class WorktreeStatus(str, Enum):
    """Lifecycle state of a worktree, derived at display time."""

    PRIMARY = "primary"
    DETACHED = "detached"
    MERGED = "merged"
    LOCAL_ONLY = "local-only"
    ACTIVE = "active"
    UNKNOWN = "unknown"

    @property
    def is_removable(self) -> bool:
        """Whether `clean` offers worktrees in this state for removal."""
        return self in (WorktreeStatus.MERGED, WorktreeStatus.LOCAL_ONLY)


@dataclass(frozen=True)
class WorktreeRecord:
    """One entry of `git worktree list --porcelain`."""

    path: Path
    branch_name: str | None = None
    is_detached: bool = False
    is_bare: bool = False
    head: str | None = None
    is_prunable: bool = False

    @property
    def name(self) -> str:
        """Directory name of the worktree."""
        return self.path.name

    @property
    def display_branch(self) -> str:
        if self.branch_name:
            return self.branch_name
        if self.is_bare:
            return "(bare)"
        return "(detached)"
