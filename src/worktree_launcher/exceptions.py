"""Exception hierarchy for worktree-launcher."""


class WorktreeLauncherError(Exception):
    """Base exception for all worktree-launcher errors."""


class GitError(WorktreeLauncherError):
    """A git command failed or git is not installed."""


class NotARepositoryError(GitError):
    """The current directory is not inside a git repository."""


class InvalidBranchError(WorktreeLauncherError):
    """A user-supplied branch name was rejected."""


class WorktreeNotFoundError(WorktreeLauncherError):
    """No worktree matched the given identifier."""


class LaunchError(WorktreeLauncherError):
    """An external tool could not be started or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class ConfigError(WorktreeLauncherError):
    """The user configuration file holds invalid values."""
