"""Interactive worktree browser.

`WorktreeBrowser` is a key-driven state machine with no terminal access of
its own: it asks a backend to do the git work and produces lines to draw.
`run_interactive` wires it to a real git repository and a raw terminal.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any, ContextManager, Protocol

from .config import get_ai_tools, load_config
from .constants import DEFAULT_REMOTE, default_worktree_path
from .env_files import copy_env_files
from .exceptions import GitError, InvalidBranchError, WorktreeLauncherError
from .git_utils import (
    add_worktree,
    get_current_branch,
    get_main_repo_root,
    list_worktrees,
    push_branch,
    remove_worktree,
    validate_branch_name,
)
from .launcher import is_tool_available, launch_ai_tool
from .logging_config import get_logger
from .models import WorktreeRecord, WorktreeStatus
from .status import classify_worktrees, resolve_default_branch

logger = get_logger(__name__)

# Single-key shortcuts that launch a tool on the selected worktree
TOOL_KEYS = {"c": "claude", "x": "codex"}

HELP_TEXT = " [n]ew  [d]elete  [c]laude  [x]codex  [p]ush  [r]efresh  [Enter]cd  [q]uit"

STATUS_COLORS = {
    WorktreeStatus.PRIMARY: "\x1b[34m",
    WorktreeStatus.DETACHED: "\x1b[33m",
    WorktreeStatus.MERGED: "\x1b[32m",
    WorktreeStatus.LOCAL_ONLY: "\x1b[33m",
    WorktreeStatus.ACTIVE: "\x1b[32m",
    WorktreeStatus.UNKNOWN: "\x1b[2m",
}
_RESET = "\x1b[0m"
_BAR = "\x1b[30;46m"


class BrowserState(Enum):
    BROWSING = "browsing"
    AWAITING_BRANCH_NAME = "awaiting_branch_name"
    AWAITING_TOOL_CHOICE = "awaiting_tool_choice"
    CONFIRMING_DESTRUCTIVE_ACTION = "confirming_destructive_action"
    EXITED = "exited"


class WorktreeBackend(Protocol):
    """Operations the browser needs from the repository."""

    def refresh(self) -> list[tuple[WorktreeRecord, WorktreeStatus]]: ...

    def create(self, branch_name: str) -> tuple[Path, list[str]]: ...

    def remove(self, record: WorktreeRecord, force: bool) -> None: ...

    def push(self, record: WorktreeRecord) -> None: ...

    def is_tool_available(self, tool: str) -> bool: ...

    def launch(self, path: Path, tool: str) -> None: ...


class GitWorktreeBackend:
    """Backend running real git commands against the main repository."""

    def __init__(self, main_repo: Path, config: dict[str, Any]):
        self.main_repo = main_repo
        self.config = config
        self.tools = get_ai_tools(config)

    def refresh(self) -> list[tuple[WorktreeRecord, WorktreeStatus]]:
        records = list_worktrees(self.main_repo)
        default_branch = resolve_default_branch(self.main_repo, self.config)
        return classify_worktrees(
            records,
            default_branch,
            self.main_repo,
            remote=self.config.get("remote", DEFAULT_REMOTE),
        )

    def create(self, branch_name: str) -> tuple[Path, list[str]]:
        """Add the worktree and seed it; returns its path and the env files that failed."""
        worktree_path = default_worktree_path(self.main_repo, branch_name)
        add_worktree(worktree_path, branch_name, repo=self.main_repo)
        copied, failed = copy_env_files(self.main_repo, worktree_path)
        logger.debug("Copied env files into %s: %s", worktree_path, copied)
        return worktree_path, failed

    def remove(self, record: WorktreeRecord, force: bool) -> None:
        remove_worktree(record.path, repo=self.main_repo, force=force)

    def push(self, record: WorktreeRecord) -> None:
        if not record.branch_name:
            raise GitError("No branch to push")
        push_branch(
            record.branch_name, cwd=record.path, remote=self.config.get("remote", DEFAULT_REMOTE)
        )

    def is_tool_available(self, tool: str) -> bool:
        return is_tool_available(tool, self.tools)

    def launch(self, path: Path, tool: str) -> None:
        launch_ai_tool(path, tool, self.tools)


class WorktreeBrowser:
    """
    Key-driven state machine behind the interactive worktree list.

    Browsing is the initial state and the state every completed or failed
    action returns to. Exited is terminal. Removal always passes through the
    confirmation state unless force is set.

    Args:
        backend: Repository operations
        tools: AI tools offered when creating a worktree, in menu order
        title: Header text (repository name and current branch)
        force: Remove worktrees without asking for confirmation
        suspend: Context manager factory wrapping tool launches, used by
            the terminal driver to hand the terminal to the child process
    """

    def __init__(
        self,
        backend: WorktreeBackend,
        tools: dict[str, dict[str, str]],
        title: str = "",
        force: bool = False,
        suspend: Callable[[], ContextManager[None]] | None = None,
    ):
        self.backend = backend
        self.tools = tools
        self.tool_names = list(tools)
        self.title = title
        self.force = force
        self.suspend = suspend or contextlib.nullcontext

        self.state = BrowserState.BROWSING
        self.entries: list[tuple[WorktreeRecord, WorktreeStatus]] = []
        self.selected = 0
        self.message = ""
        self.branch_buffer = ""
        self.pending_branch: str | None = None
        self.pending_removal: WorktreeRecord | None = None
        self.exit_message: str | None = None

    @property
    def selected_entry(self) -> tuple[WorktreeRecord, WorktreeStatus] | None:
        if 0 <= self.selected < len(self.entries):
            return self.entries[self.selected]
        return None

    def start(self) -> None:
        self.refresh()

    def refresh(self) -> None:
        try:
            self.entries = self.backend.refresh()
        except WorktreeLauncherError as e:
            self.message = f"Error: {e}"
            return
        self.selected = max(0, min(self.selected, len(self.entries) - 1))
        self.show_path()

    def show_path(self) -> None:
        entry = self.selected_entry
        self.message = str(entry[0].path) if entry else ""

    def handle_key(self, key: str) -> None:
        """Feed one key event to the current state."""
        handlers = {
            BrowserState.BROWSING: self._handle_browsing,
            BrowserState.AWAITING_BRANCH_NAME: self._handle_branch_name,
            BrowserState.AWAITING_TOOL_CHOICE: self._handle_tool_choice,
            BrowserState.CONFIRMING_DESTRUCTIVE_ACTION: self._handle_confirm,
        }
        handler = handlers.get(self.state)
        if handler is not None:
            handler(key)

    # Browsing

    def _handle_browsing(self, key: str) -> None:
        if key in ("q", "ctrl-c"):
            self.state = BrowserState.EXITED
        elif key in ("up", "k"):
            if self.entries:
                self.selected = (self.selected - 1) % len(self.entries)
                self.show_path()
        elif key in ("down", "j"):
            if self.entries:
                self.selected = (self.selected + 1) % len(self.entries)
                self.show_path()
        elif key == "enter":
            entry = self.selected_entry
            if entry:
                self.exit_message = f'cd "{entry[0].path}"'
                self.state = BrowserState.EXITED
        elif key == "n":
            self.branch_buffer = ""
            self.state = BrowserState.AWAITING_BRANCH_NAME
            self.message = "Branch name:"
        elif key == "d":
            self._request_removal()
        elif key in TOOL_KEYS:
            entry = self.selected_entry
            if entry:
                self._launch(entry[0].path, TOOL_KEYS[key])
        elif key == "p":
            self._push_selected()
        elif key == "r":
            self.refresh()

    def _request_removal(self) -> None:
        entry = self.selected_entry
        if not entry:
            return
        record, status = entry
        if status == WorktreeStatus.PRIMARY:
            self.message = "Cannot delete main worktree"
            return

        self.pending_removal = record
        if self.force:
            self._remove_pending()
        else:
            self.state = BrowserState.CONFIRMING_DESTRUCTIVE_ACTION
            self.message = f"Delete {record.name}? [y/N]"

    def _push_selected(self) -> None:
        entry = self.selected_entry
        if not entry or not entry[0].branch_name:
            self.message = "No branch to push"
            return
        record = entry[0]
        try:
            self.backend.push(record)
        except WorktreeLauncherError as e:
            self.message = f"Error: {e}"
            return
        self.message = f"Pushed {record.branch_name}"

    def _launch(self, path: Path, tool: str) -> None:
        if not self.backend.is_tool_available(tool):
            self.message = f"{tool} is not installed"
            return
        try:
            with self.suspend():
                self.backend.launch(path, tool)
        except WorktreeLauncherError as e:
            self.message = f"Error: {e}"
            return
        self.message = f"{tool} exited ({path.name})"

    # New worktree wizard

    def _handle_branch_name(self, key: str) -> None:
        if key in ("esc", "ctrl-c"):
            self._back_to_browsing()
        elif key == "enter":
            value = self.branch_buffer.strip()
            if not value:
                self._back_to_browsing()
                return
            try:
                validate_branch_name(value)
            except InvalidBranchError as e:
                self.branch_buffer = ""
                self.message = f"Error: {e}"
                return
            self.pending_branch = value
            self.state = BrowserState.AWAITING_TOOL_CHOICE
            self.message = "Which AI assistant to launch?"
        elif key == "backspace":
            self.branch_buffer = self.branch_buffer[:-1]
        elif key == "space":
            self.branch_buffer += " "
        elif len(key) == 1:
            self.branch_buffer += key

    def _handle_tool_choice(self, key: str) -> None:
        if key in ("esc", "ctrl-c"):
            self.pending_branch = None
            self._back_to_browsing()
            return
        if not key.isdigit():
            return

        choice = int(key)
        if 1 <= choice <= len(self.tool_names):
            tool: str | None = self.tool_names[choice - 1]
        elif choice == len(self.tool_names) + 1:
            tool = None
        else:
            return

        branch = self.pending_branch
        self.pending_branch = None
        self.state = BrowserState.BROWSING
        if branch is not None:
            self._create(branch, tool)

    def _create(self, branch: str, tool: str | None) -> None:
        try:
            worktree_path, env_failures = self.backend.create(branch)
        except WorktreeLauncherError as e:
            self.message = f"Error: {e}"
            return

        self.refresh()
        for index, (record, _) in enumerate(self.entries):
            if record.path == worktree_path:
                self.selected = index
                break
        self.message = f"Created {branch}"
        if env_failures:
            self.message += f" (could not copy {', '.join(env_failures)})"

        if tool:
            self._launch(worktree_path, tool)

    # Removal

    def _handle_confirm(self, key: str) -> None:
        if key in ("y", "Y"):
            self._remove_pending()
        elif key in ("n", "N", "esc", "enter", "ctrl-c", "q"):
            self.pending_removal = None
            self._back_to_browsing()

    def _remove_pending(self) -> None:
        record = self.pending_removal
        self.pending_removal = None
        self.state = BrowserState.BROWSING
        if record is None:
            return

        try:
            self.backend.remove(record, force=False)
            message = f"Deleted {record.name}"
        except WorktreeLauncherError:
            try:
                self.backend.remove(record, force=True)
                message = f"Deleted {record.name} (forced)"
            except WorktreeLauncherError as e:
                message = f"Error: {e}"

        if self.selected > 0:
            self.selected -= 1
        self.refresh()
        self.message = message

    def _back_to_browsing(self) -> None:
        self.state = BrowserState.BROWSING
        self.branch_buffer = ""
        self.show_path()

    # Rendering

    def render(self) -> list[str]:
        """Screen lines for the current state."""
        lines = [f"{_BAR} {self.title}{_RESET}"]

        name_width = max((len(record.name) for record, _ in self.entries), default=0)
        name_width = min(max(name_width + 2, 24), 48)
        for index, (record, status) in enumerate(self.entries):
            color = STATUS_COLORS.get(status, "")
            row = (
                f" {record.name:<{name_width}} {record.display_branch:<30} "
                f"{color}{status.value}{_RESET}"
            )
            if index == self.selected:
                row = f"\x1b[7m{row}{_RESET}"
            lines.append(row)

        lines.append("")
        lines.extend(self._render_prompt())
        lines.append(f" {self.message}")
        lines.append(f"{_BAR}{HELP_TEXT}{_RESET}")
        return lines

    def _render_prompt(self) -> list[str]:
        if self.state == BrowserState.AWAITING_BRANCH_NAME:
            return [
                " New worktree",
                f" Branch name: {self.branch_buffer}_",
                " [Enter] next  [Esc] cancel",
            ]
        if self.state == BrowserState.AWAITING_TOOL_CHOICE:
            lines = [f" Launch AI tool in {self.pending_branch}:"]
            for index, name in enumerate(self.tool_names, start=1):
                lines.append(f"   [{index}] {self.tools[name].get('label', name)}")
            lines.append(f"   [{len(self.tool_names) + 1}] Skip")
            lines.append(" [Esc] cancel")
            return lines
        return []


def run_interactive(force: bool = False) -> str | None:
    """
    Run the interactive browser on the current repository.

    Args:
        force: Remove worktrees without asking for confirmation

    Returns:
        Message to print after the screen closes (a `cd` hint), if any

    Raises:
        NotARepositoryError: If not in a git repository
        WorktreeLauncherError: If no terminal is available
    """
    import sys

    from .tui import FullScreen, draw_screen

    main_repo = get_main_repo_root()
    config = load_config()
    try:
        current_branch = get_current_branch(Path.cwd())
    except (InvalidBranchError, GitError):
        current_branch = "HEAD"

    if not sys.stdin.isatty() or not sys.stderr.isatty():
        raise WorktreeLauncherError("Interactive mode needs a terminal; try 'wt list'")

    backend = GitWorktreeBackend(main_repo, config)
    with FullScreen() as screen:
        browser = WorktreeBrowser(
            backend,
            backend.tools,
            title=f"{main_repo.name} ({current_branch})",
            force=force,
            suspend=screen.suspended,
        )
        browser.start()
        while browser.state != BrowserState.EXITED:
            draw_screen(browser.render())
            try:
                key = screen.read_key()
            except (EOFError, KeyboardInterrupt):
                break
            browser.handle_key(key)

    return browser.exit_message
