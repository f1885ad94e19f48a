"""Git operations wrapper utilities."""

import subprocess
from pathlib import Path
from shutil import which
from typing import List, Optional

from .constants import DEFAULT_REMOTE, FALLBACK_DEFAULT_BRANCHES, MAX_BRANCH_NAME_LENGTH
from .exceptions import GitError, InvalidBranchError, NotARepositoryError
from .logging_config import get_logger
from .models import WorktreeRecord

logger = get_logger(__name__)


def run_command(
    cmd: List[str],
    cwd: Optional[Path] = None,
    check: bool = True,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a command and wait for it to exit.

    Args:
        cmd: Command and arguments as a list
        cwd: Working directory for the command
        check: Raise exception on non-zero exit code
        capture: Capture stdout/stderr

    Returns:
        CompletedProcess instance

    Raises:
        GitError: If command fails and check=True
    """
    kwargs = {}
    if capture:
        kwargs["stdout"] = subprocess.PIPE
        kwargs["stderr"] = subprocess.STDOUT
        kwargs["text"] = True

    logger.debug("Running: %s (cwd=%s)", " ".join(cmd), cwd or ".")
    try:
        result = subprocess.run(cmd, cwd=cwd, check=False, **kwargs)
    except FileNotFoundError as e:
        raise GitError(f"Command not found: {cmd[0]}") from e

    if check and result.returncode != 0:
        output = result.stdout.strip() if capture and result.stdout else ""
        message = f"Command failed: {' '.join(cmd)}"
        if output:
            message += f"\n{output}"
        raise GitError(message)
    return result


def git_command(
    *args: str,
    repo: Optional[Path] = None,
    check: bool = True,
    capture: bool = False,
) -> subprocess.CompletedProcess:
    """
    Run a git command.

    Args:
        *args: Git command arguments
        repo: Repository path
        check: Raise exception on non-zero exit code
        capture: Capture stdout/stderr

    Returns:
        CompletedProcess instance

    Raises:
        GitError: If git command fails
    """
    cmd = ["git"] + list(args)
    return run_command(cmd, cwd=repo, check=check, capture=capture)


def is_git_repo(path: Optional[Path] = None) -> bool:
    """Check whether path (default: cwd) is inside a git repository."""
    try:
        result = git_command("rev-parse", "--git-dir", repo=path, check=False, capture=True)
    except GitError:
        return False
    return result.returncode == 0


def get_repo_root(path: Optional[Path] = None) -> Path:
    """
    Get the root directory of the git repository.

    Args:
        path: Optional path to start from (defaults to current directory)

    Returns:
        Path to repository root

    Raises:
        NotARepositoryError: If not in a git repository
    """
    try:
        result = git_command("rev-parse", "--show-toplevel", repo=path, capture=True)
    except GitError:
        raise NotARepositoryError("Not a git repository")
    return Path(result.stdout.strip())


def get_main_repo_root(path: Optional[Path] = None) -> Path:
    """
    Get the primary worktree of the repository containing path.

    Works from inside a linked worktree too: git always reports the primary
    worktree first.

    Raises:
        NotARepositoryError: If not in a git repository
    """
    repo = get_repo_root(path)
    records = list_worktrees(repo)
    if records:
        return records[0].path
    return repo


def get_current_branch(repo: Optional[Path] = None) -> str:
    """
    Get the current branch name.

    Args:
        repo: Repository path

    Returns:
        Current branch name

    Raises:
        InvalidBranchError: If in detached HEAD state
    """
    result = git_command("rev-parse", "--abbrev-ref", "HEAD", repo=repo, capture=True)
    branch = result.stdout.strip()
    if branch == "HEAD":
        raise InvalidBranchError("In detached HEAD state")
    return branch


def branch_exists(branch: str, repo: Optional[Path] = None) -> bool:
    """
    Check if a local branch exists.

    Args:
        branch: Branch name
        repo: Repository path

    Returns:
        True if branch exists, False otherwise
    """
    result = git_command(
        "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}",
        repo=repo, check=False, capture=True,
    )
    return result.returncode == 0


def list_remotes(repo: Optional[Path] = None) -> List[str]:
    """Names of the configured remotes."""
    result = git_command("remote", repo=repo, capture=True)
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def remote_branch_exists(
    branch: str, repo: Optional[Path] = None, remote: str = DEFAULT_REMOTE
) -> bool:
    """
    Check if a branch of the same name exists on the remote.

    Only the locally known remote-tracking refs are consulted; nothing is
    fetched.

    Args:
        branch: Local branch name
        repo: Repository path
        remote: Remote name

    Returns:
        True if <remote>/<branch> exists

    Raises:
        GitError: If the remote is not configured or git fails
    """
    if remote not in list_remotes(repo):
        raise GitError(f"No remote '{remote}' configured")

    result = git_command("branch", "-r", "--format=%(refname:short)", repo=repo, capture=True)
    remote_branches = {line.strip() for line in result.stdout.splitlines()}
    return f"{remote}/{branch}" in remote_branches


def get_default_branch(repo: Optional[Path] = None, remote: str = DEFAULT_REMOTE) -> str:
    """
    Get the repository's default branch.

    Uses <remote>/HEAD when set, then the first existing local fallback
    branch (main, master), then "main".
    """
    result = git_command(
        "symbolic-ref", "--quiet", f"refs/remotes/{remote}/HEAD",
        repo=repo, check=False, capture=True,
    )
    if result.returncode == 0:
        ref = result.stdout.strip()
        prefix = f"refs/remotes/{remote}/"
        if ref.startswith(prefix):
            return ref[len(prefix):]

    for candidate in FALLBACK_DEFAULT_BRANCHES:
        if branch_exists(candidate, repo):
            return candidate
    return FALLBACK_DEFAULT_BRANCHES[0]


def is_branch_merged(branch: str, target: str, repo: Optional[Path] = None) -> bool:
    """
    Check whether every commit of branch is reachable from target.

    Args:
        branch: Branch to check
        target: Branch it should be merged into (usually the default branch)
        repo: Repository path

    Returns:
        True if branch is an ancestor of target

    Raises:
        GitError: If either ref cannot be resolved
    """
    result = git_command(
        "merge-base", "--is-ancestor", f"refs/heads/{branch}", target,
        repo=repo, check=False, capture=True,
    )
    if result.returncode == 0:
        return True
    if result.returncode == 1:
        return False
    raise GitError(
        f"Cannot check whether '{branch}' is merged into '{target}': {result.stdout.strip()}"
    )


def get_branch_name_error(branch_name: str) -> Optional[str]:
    """
    Describe why a branch name is rejected.

    Returns:
        Error message, or None if the name is acceptable
    """
    if not branch_name or branch_name.strip() == "":
        return "Branch name cannot be empty"
    if branch_name.startswith("-"):
        return "Branch name cannot start with -"
    if ".." in branch_name:
        return "Branch name cannot contain .."
    if len(branch_name) > MAX_BRANCH_NAME_LENGTH:
        return f"Branch name too long (max {MAX_BRANCH_NAME_LENGTH} characters)"
    return None


def validate_branch_name(branch_name: str) -> None:
    """
    Reject branch names that are unsafe to pass to git or use in a path.

    Raises:
        InvalidBranchError: If the name is empty, flag-like, contains "..",
            or is too long
    """
    error = get_branch_name_error(branch_name)
    if error:
        raise InvalidBranchError(error)


def parse_worktree_porcelain(output: str) -> List[WorktreeRecord]:
    """
    Parse `git worktree list --porcelain` output.

    Args:
        output: Raw porcelain text

    Returns:
        One record per worktree, in the order git reports them
    """
    records: List[WorktreeRecord] = []
    current: Optional[dict] = None

    def flush() -> None:
        if current is not None:
            records.append(WorktreeRecord(**current))

    for line in output.splitlines():
        if line.startswith("worktree "):
            flush()
            current = {"path": Path(line[len("worktree "):])}
        elif current is None:
            continue
        elif line.startswith("HEAD "):
            current["head"] = line[len("HEAD "):]
        elif line.startswith("branch "):
            ref = line[len("branch "):]
            current["branch_name"] = ref[11:] if ref.startswith("refs/heads/") else ref
        elif line == "bare":
            current["is_bare"] = True
        elif line == "detached":
            current["is_detached"] = True
        elif line == "prunable" or line.startswith("prunable "):
            current["is_prunable"] = True

    flush()
    return records


def list_worktrees(repo: Optional[Path] = None) -> List[WorktreeRecord]:
    """
    List all worktrees known to the repository.

    Args:
        repo: Repository path

    Returns:
        Worktree records, primary worktree first
    """
    result = git_command("worktree", "list", "--porcelain", repo=repo, capture=True)
    return parse_worktree_porcelain(result.stdout)


def find_worktree(records: List[WorktreeRecord], identifier: str) -> Optional[WorktreeRecord]:
    """
    Find a worktree by branch name, path, directory name or path suffix.

    Args:
        records: Records to search
        identifier: What the user typed

    Returns:
        The first matching record, or None
    """
    if not identifier:
        return None

    candidate = Path(identifier).expanduser()
    resolved = candidate.resolve() if candidate.exists() else None

    for record in records:
        path_str = str(record.path)
        if (
            record.branch_name == identifier
            or path_str == identifier
            or record.path.name == identifier
            or path_str.endswith(identifier)
            or (resolved is not None and record.path.resolve() == resolved)
        ):
            return record
    return None


def add_worktree(
    worktree_path: Path,
    branch_name: str,
    repo: Optional[Path] = None,
    start_point: Optional[str] = None,
) -> None:
    """
    Create a worktree for branch_name at worktree_path.

    Checks out the branch if it exists locally, otherwise creates it from
    start_point (default: HEAD).

    Raises:
        InvalidBranchError: If the branch name is rejected
        GitError: If git worktree add fails
    """
    validate_branch_name(branch_name)

    if branch_exists(branch_name, repo):
        git_command(
            "worktree", "add", "--", str(worktree_path), branch_name, repo=repo, capture=True
        )
    elif start_point:
        git_command(
            "worktree", "add", "-b", branch_name, "--", str(worktree_path), start_point,
            repo=repo, capture=True,
        )
    else:
        git_command(
            "worktree", "add", "-b", branch_name, "--", str(worktree_path),
            repo=repo, capture=True,
        )


def remove_worktree(worktree_path: Path, repo: Optional[Path] = None, force: bool = False) -> None:
    """
    Remove a worktree.

    Raises:
        GitError: If git refuses (e.g. uncommitted changes without force)
    """
    args = ["worktree", "remove"]
    if force:
        args.append("--force")
    args.append(str(worktree_path))
    git_command(*args, repo=repo, capture=True)


def prune_worktrees(repo: Optional[Path] = None) -> None:
    """Prune administrative data of worktrees whose directories are gone."""
    git_command("worktree", "prune", repo=repo, capture=True)


def push_branch(branch: str, cwd: Optional[Path] = None, remote: str = DEFAULT_REMOTE) -> None:
    """Push branch to remote and set it as upstream."""
    git_command("push", "-u", remote, branch, repo=cwd, capture=True)


def has_command(name: str) -> bool:
    """
    Check if a command is available in PATH.

    Args:
        name: Command name

    Returns:
        True if command exists, False otherwise
    """
    return bool(which(name))
