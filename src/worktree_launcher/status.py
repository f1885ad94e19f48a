"""Worktree status classification."""

from pathlib import Path
from typing import Any, List, Optional, Tuple

from .constants import DEFAULT_REMOTE
from .exceptions import GitError
from .git_utils import get_default_branch, is_branch_merged, remote_branch_exists
from .logging_config import get_logger
from .models import WorktreeRecord, WorktreeStatus

logger = get_logger(__name__)


def resolve_default_branch(repo: Path, config: dict[str, Any]) -> str:
    """Default branch from config, falling back to what git reports."""
    configured = config.get("default_branch")
    if configured:
        return configured
    return get_default_branch(repo, remote=config.get("remote", DEFAULT_REMOTE))


def classify_worktree(
    record: WorktreeRecord,
    default_branch: str,
    repo: Path,
    is_primary: bool = False,
    remote: str = DEFAULT_REMOTE,
) -> WorktreeStatus:
    """
    Classify a single worktree.

    Order: primary, bare, detached, merged, local-only, active. The merge
    check wins over the remote check, so a merged branch is reported as
    merged whether or not it was pushed. Git failures during either check
    fall back to active, which `clean` never offers for removal.

    Args:
        record: Worktree to classify
        default_branch: Branch that merged work lands on
        repo: Repository path used for the git queries
        is_primary: Whether record is the primary worktree
        remote: Remote consulted for the local-only check

    Returns:
        The worktree's status
    """
    if is_primary:
        return WorktreeStatus.PRIMARY
    if record.is_bare:
        return WorktreeStatus.UNKNOWN
    if record.is_detached or not record.branch_name:
        return WorktreeStatus.DETACHED

    branch = record.branch_name
    try:
        if is_branch_merged(branch, default_branch, repo):
            return WorktreeStatus.MERGED
        if not remote_branch_exists(branch, repo, remote=remote):
            return WorktreeStatus.LOCAL_ONLY
    except GitError as e:
        logger.debug("Status check for %s failed, assuming active: %s", branch, e)

    return WorktreeStatus.ACTIVE


def classify_worktrees(
    records: List[WorktreeRecord],
    default_branch: str,
    repo: Path,
    primary_path: Optional[Path] = None,
    remote: str = DEFAULT_REMOTE,
) -> List[Tuple[WorktreeRecord, WorktreeStatus]]:
    """
    Classify every record.

    Args:
        records: Records as listed by git
        default_branch: Branch that merged work lands on
        repo: Repository path used for the git queries
        primary_path: Path of the primary worktree; defaults to the first
            record, which is where git lists it
        remote: Remote consulted for the local-only check

    Returns:
        (record, status) pairs in the input order
    """
    if primary_path is None and records:
        primary_path = records[0].path

    return [
        (
            record,
            classify_worktree(
                record,
                default_branch,
                repo,
                is_primary=record.path == primary_path,
                remote=remote,
            ),
        )
        for record in records
    ]
