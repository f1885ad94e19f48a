"""Copy local environment files into new worktrees."""

import shutil
from pathlib import Path
from typing import List, Tuple

from .constants import ENV_FILE_NAME, ENV_TEMPLATE_SUFFIXES
from .logging_config import get_logger

logger = get_logger(__name__)


def is_env_file(name: str) -> bool:
    """Whether a file name is ".env" or ".env.<suffix>", excluding templates."""
    if name != ENV_FILE_NAME and not name.startswith(f"{ENV_FILE_NAME}."):
        return False
    return not name.endswith(ENV_TEMPLATE_SUFFIXES)


def find_env_files(source_dir: Path) -> List[str]:
    """
    Find env files at the top level of source_dir.

    Args:
        source_dir: Directory to search (not recursive)

    Returns:
        Sorted file names
    """
    return sorted(
        path.name
        for path in source_dir.glob(f"{ENV_FILE_NAME}*")
        if path.is_file() and is_env_file(path.name)
    )


def copy_env_files(source_dir: Path, dest_dir: Path) -> Tuple[List[str], List[str]]:
    """
    Copy env files from source_dir into dest_dir.

    A file that cannot be copied is skipped and reported back; the rest are
    still copied. Nothing is printed, so callers drawing a full-screen UI
    decide how to show failures.

    Args:
        source_dir: Main checkout holding the env files
        dest_dir: Worktree to seed

    Returns:
        (copied, failed) file names
    """
    copied: List[str] = []
    failed: List[str] = []
    for name in find_env_files(source_dir):
        try:
            shutil.copy2(source_dir / name, dest_dir / name)
        except OSError as e:
            logger.debug("Could not copy %s: %s", name, e)
            failed.append(name)
            continue
        copied.append(name)
    return copied, failed
