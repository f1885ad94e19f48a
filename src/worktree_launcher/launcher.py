"""Launch AI coding assistants and package installs inside worktrees."""

import os
import shlex
import subprocess
from pathlib import Path
from typing import Optional

from .config import get_ai_tools
from .constants import INSTALL_COMMANDS, LOCKFILE_MANAGERS
from .exceptions import LaunchError
from .git_utils import has_command
from .logging_config import get_logger

logger = get_logger(__name__)


def get_tool_command(tool: str, tools: Optional[dict] = None) -> list[str]:
    """
    Get the command line configured for an AI tool.

    Raises:
        LaunchError: If the tool is not configured
    """
    if tools is None:
        tools = get_ai_tools()
    if tool not in tools:
        known = ", ".join(tools)
        raise LaunchError(f"Unknown AI tool '{tool}'. Available: {known}")
    return shlex.split(tools[tool]["command"])


def is_tool_available(tool: str, tools: Optional[dict] = None) -> bool:
    """Check whether the tool's executable is on PATH."""
    try:
        parts = get_tool_command(tool, tools)
    except LaunchError:
        return False
    return bool(parts) and has_command(parts[0])


def launch_ai_tool(path: Path, tool: str, tools: Optional[dict] = None) -> None:
    """
    Run an AI coding assistant in path and wait for it to exit.

    The command runs through the user's login shell ($SHELL -lc) with the
    terminal inherited, so profile PATH changes apply and the assistant is
    fully interactive.

    Args:
        path: Worktree directory to start the tool in
        tool: Tool name (e.g. "claude", "codex")
        tools: Tool table; defaults to the configured tools

    Raises:
        LaunchError: If the tool is unknown or exits non-zero
    """
    parts = get_tool_command(tool, tools)
    cmd = " ".join(shlex.quote(part) for part in parts)

    logger.debug("Launching %s in %s", cmd, path)
    shell = os.environ.get("SHELL") or "/bin/sh"
    result = subprocess.run([shell, "-lc", cmd], cwd=str(path), check=False)
    if result.returncode != 0:
        raise LaunchError(f"{tool} exited with code {result.returncode}", result.returncode)


def detect_package_manager(directory: Path) -> Optional[str]:
    """
    Detect the package manager from lockfiles in directory.

    Returns:
        Manager name, "npm" for a package.json without lockfile, or None
    """
    for lockfile, manager, _ in LOCKFILE_MANAGERS:
        if (directory / lockfile).is_file():
            return manager
    if (directory / "package.json").is_file():
        return "npm"
    return None


def run_install(directory: Path, manager: str) -> None:
    """
    Run the package manager's install command in directory.

    Raises:
        LaunchError: If the manager is missing or the install fails
    """
    cmd = INSTALL_COMMANDS[manager]
    logger.debug("Running %s in %s", " ".join(cmd), directory)
    try:
        result = subprocess.run(cmd, cwd=str(directory), check=False)
    except FileNotFoundError as e:
        raise LaunchError(f"{manager} is not installed") from e
    if result.returncode != 0:
        raise LaunchError(
            f"{manager} install failed with code {result.returncode}", result.returncode
        )
