"""Constants and default values for worktree-launcher."""

from pathlib import Path

# Remote consulted for remote-branch and default-branch lookups
DEFAULT_REMOTE = "origin"

# Local branches probed, in order, when origin/HEAD is not set
FALLBACK_DEFAULT_BRANCHES = ("main", "master")

MAX_BRANCH_NAME_LENGTH = 250

# Env files copied into new worktrees: ".env" and ".env.<suffix>"
ENV_FILE_NAME = ".env"
ENV_TEMPLATE_SUFFIXES = (".example", ".sample", ".template")

# AI tool presets, keyed by name
DEFAULT_AI_TOOLS = {
    "claude": {
        "command": "claude",
        "label": "Claude Code",
        "description": "Anthropic's Claude coding assistant",
    },
    "codex": {
        "command": "codex",
        "label": "Codex",
        "description": "OpenAI's Codex coding assistant",
    },
}
DEFAULT_AI_TOOL = "claude"

# Lockfile -> (package manager, install command), first match wins
LOCKFILE_MANAGERS = (
    ("bun.lockb", "bun", ["bun", "install"]),
    ("pnpm-lock.yaml", "pnpm", ["pnpm", "install"]),
    ("yarn.lock", "yarn", ["yarn", "install"]),
    ("package-lock.json", "npm", ["npm", "install"]),
    ("uv.lock", "uv", ["uv", "sync"]),
    ("poetry.lock", "poetry", ["poetry", "install"]),
)

INSTALL_COMMANDS = {manager: command for _, manager, command in LOCKFILE_MANAGERS}

CONFIG_PATH_ENV_VAR = "WT_CONFIG_PATH"


def default_worktree_path(repo_path: Path, branch_name: str) -> Path:
    """
    Generate the worktree path for a branch.

    Format: ../<repo>-<branch>, with "/" in the branch replaced by "-".
    Example: /Users/dave/myproject + feature/auth -> /Users/dave/myproject-feature-auth

    Args:
        repo_path: Path to the main repository root
        branch_name: Name of the feature branch

    Returns:
        Default worktree path
    """
    repo_path = repo_path.resolve()
    safe_branch = branch_name.replace("/", "-")
    return repo_path.parent / f"{repo_path.name}-{safe_branch}"
