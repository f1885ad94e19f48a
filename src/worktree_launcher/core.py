"""Core business logic for worktree-launcher commands."""

import os
from pathlib import Path

from rich.markup import escape

from .config import get_ai_tools, load_config
from .console import get_console
from .constants import DEFAULT_REMOTE, INSTALL_COMMANDS, default_worktree_path
from .env_files import copy_env_files
from .exceptions import GitError, LaunchError, WorktreeLauncherError, WorktreeNotFoundError
from .git_utils import (
    add_worktree,
    find_worktree,
    get_main_repo_root,
    list_worktrees as git_list_worktrees,
    prune_worktrees,
    push_branch,
    remove_worktree as git_remove_worktree,
    validate_branch_name,
)
from .launcher import (
    detect_package_manager,
    is_tool_available,
    launch_ai_tool,
    run_install,
)
from .models import WorktreeRecord, WorktreeStatus
from .status import classify_worktrees, resolve_default_branch
from .tui import arrow_select, checkbox_select, confirm

console = get_console()

STATUS_STYLES = {
    WorktreeStatus.PRIMARY: "blue",
    WorktreeStatus.DETACHED: "yellow",
    WorktreeStatus.MERGED: "green",
    WorktreeStatus.LOCAL_ONLY: "yellow",
    WorktreeStatus.ACTIVE: "green",
    WorktreeStatus.UNKNOWN: "dim",
}


def select_ai_tool(tools: dict[str, dict[str, str]], default: str | None = None) -> str | None:
    """
    Ask which AI tool to launch.

    Returns:
        Tool name, or None if the selection was cancelled
    """
    names = list(tools)
    items = [(tools[name].get("label", name), tools[name].get("description", "")) for name in names]
    default_index = names.index(default) if default in names else 0
    index = arrow_select(items, title="Select AI coding assistant:", default_index=default_index)
    if index is None:
        return None
    return names[index]


def create_worktree(
    branch_name: str,
    install: bool = False,
    skip_launch: bool = False,
    push: bool = False,
    base_branch: str | None = None,
    tool: str | None = None,
) -> Path:
    """
    Create a worktree for a branch, seed it and launch an AI tool in it.

    Args:
        branch_name: Branch to check out (created if it does not exist)
        install: Run the detected package manager's install
        skip_launch: Stop after creating the worktree
        push: Push the branch to the remote and set upstream
        base_branch: Start point for a new branch (default: HEAD)
        tool: AI tool to launch; asked interactively when None

    Returns:
        Path to the created worktree

    Raises:
        NotARepositoryError: If not in a git repository
        InvalidBranchError: If the branch name is rejected
        GitError: If the worktree cannot be created
        LaunchError: If the chosen tool is missing or fails
    """
    main_repo = get_main_repo_root()
    config = load_config()

    validate_branch_name(branch_name)
    worktree_path = default_worktree_path(main_repo, branch_name)

    console.print(
        f"\n[cyan]Creating worktree for branch: [bold]{escape(branch_name)}[/bold][/cyan]"
    )
    console.print(f"[dim]Repository: {escape(main_repo.name)}[/dim]")
    console.print(f"[dim]Worktree path: {escape(str(worktree_path))}[/dim]\n")

    with console.status("Creating worktree..."):
        add_worktree(worktree_path, branch_name, repo=main_repo, start_point=base_branch)
    console.print("[bold green]✓[/bold green] Worktree created successfully")

    if push:
        remote = config.get("remote", DEFAULT_REMOTE)
        try:
            with console.status("Pushing branch to remote..."):
                push_branch(branch_name, cwd=worktree_path, remote=remote)
            console.print(
                f"[bold green]✓[/bold green] Pushed {escape(branch_name)} to {escape(remote)}"
            )
        except GitError as e:
            console.print(f"[yellow]⚠[/yellow] Could not push: {escape(str(e))}")

    copied, failed = copy_env_files(main_repo, worktree_path)
    if copied:
        console.print(
            f"[bold green]✓[/bold green] Copied {len(copied)} env file(s): "
            f"{escape(', '.join(copied))}"
        )
    elif not failed:
        console.print("[yellow]No .env files found to copy[/yellow]")
    if failed:
        console.print(f"[yellow]⚠[/yellow] Could not copy: {escape(', '.join(failed))}")

    manager = detect_package_manager(worktree_path)
    install_cmd = " ".join(INSTALL_COMMANDS[manager]) if manager else ""
    if install and manager:
        console.print(f"[cyan]Running {install_cmd}...[/cyan]")
        try:
            run_install(worktree_path, manager)
            console.print(f"[bold green]✓[/bold green] {manager} install completed")
        except LaunchError as e:
            console.print(f"[bold red]✗[/bold red] {escape(str(e))}")
    elif manager:
        console.print(
            f"\n[dim]Tip: Run '{install_cmd}' in the worktree, "
            "or use 'wt new --install' next time[/dim]"
        )

    if skip_launch:
        console.print(
            f"\n[bold green]✓ Worktree ready at:[/bold green] {escape(str(worktree_path))}"
        )
        console.print(f'[dim]  cd "{escape(str(worktree_path))}"[/dim]')
        return worktree_path

    tools = get_ai_tools(config)
    if tool is None:
        console.print()
        tool = select_ai_tool(tools, default=config.get("default_tool"))
        if tool is None:
            console.print("[yellow]No AI tool selected[/yellow]")
            console.print(f'[dim]  cd "{escape(str(worktree_path))}"[/dim]')
            return worktree_path

    if not is_tool_available(tool, tools):
        raise LaunchError(
            f"{tool} is not installed or not in PATH\n"
            f"Worktree is ready at: {worktree_path}\n"
            "You can manually launch your AI tool there."
        )

    console.print(f"\n[cyan]Launching {escape(tool)} in worktree (Ctrl+C to exit)...[/cyan]\n")
    launch_ai_tool(worktree_path, tool, tools)
    console.print(
        f"\n[bold green]✓[/bold green] {escape(tool)} session in "
        f"{escape(str(worktree_path))} ended"
    )
    return worktree_path


def _collect_statuses() -> tuple[Path, list[tuple[WorktreeRecord, WorktreeStatus]]]:
    main_repo = get_main_repo_root()
    config = load_config()
    records = git_list_worktrees(main_repo)
    default_branch = resolve_default_branch(main_repo, config)
    entries = classify_worktrees(
        records,
        default_branch,
        main_repo,
        remote=config.get("remote", DEFAULT_REMOTE),
    )
    return main_repo, entries


def _shorten_path(path: Path, max_length: int) -> str:
    """Keep the trailing path components that fit in max_length."""
    text = str(path)
    if len(text) <= max_length:
        return text

    parts = path.parts
    result = parts[-1]
    for part in reversed(parts[:-1]):
        candidate = os.path.join(part, result)
        if len(candidate) > max_length - 4:
            return f"...{os.sep}{result}"
        result = candidate
    return result


def list_worktrees() -> None:
    """
    Print every worktree with its branch and status.

    Raises:
        NotARepositoryError: If not in a git repository
    """
    main_repo, entries = _collect_statuses()

    if not entries:
        console.print("[yellow]No worktrees found[/yellow]")
        return

    console.print(f"\n[cyan]Worktrees for: [bold]{escape(main_repo.name)}[/bold][/cyan]\n")
    console.print("[dim]" + "─" * 100 + "[/dim]")
    console.print(f"[bold]{'Path':<50}{'Branch':<25}Status[/bold]")
    console.print("[dim]" + "─" * 100 + "[/dim]")

    for record, status in entries:
        display_path = _shorten_path(record.path, 48)
        if status == WorktreeStatus.PRIMARY:
            path_cell = f"[bold]{escape(f'{display_path:<50}')}[/bold]"
        else:
            path_cell = escape(f"{display_path:<50}")

        if record.branch_name:
            branch_cell = escape(f"{record.branch_name:<25}")
        else:
            branch_cell = f"[yellow]{record.display_branch:<25}[/yellow]"

        style = STATUS_STYLES.get(status, "white")
        status_cell = f"[{style}]{status.value}[/{style}]"
        if status == WorktreeStatus.MERGED:
            status_cell += " [dim](can clean)[/dim]"

        console.print(f"{path_cell}{branch_cell}{status_cell}")

    console.print("[dim]" + "─" * 100 + "[/dim]")
    console.print(f"\n[dim]Total: {len(entries)} worktree(s)[/dim]")


def _remove_with_fallback(record: WorktreeRecord, repo: Path) -> bool:
    """
    Remove a worktree, retrying with --force once.

    Returns:
        True if the forced retry was needed

    Raises:
        GitError: If the forced removal fails too
    """
    try:
        git_remove_worktree(record.path, repo=repo, force=False)
        return False
    except GitError:
        git_remove_worktree(record.path, repo=repo, force=True)
        return True


def clean_worktrees(dry_run: bool = False, yes: bool = False) -> int:
    """
    Remove worktrees whose branches are merged or exist only locally.

    Args:
        dry_run: Only show the candidates
        yes: Remove every candidate without prompting

    Returns:
        Number of worktrees removed

    Raises:
        NotARepositoryError: If not in a git repository
    """
    main_repo = get_main_repo_root()

    with console.status("Pruning stale references..."):
        prune_worktrees(main_repo)
    console.print("[bold green]✓[/bold green] Pruned stale references")

    with console.status("Checking worktree status..."):
        _, entries = _collect_statuses()

    stale = [(record, status) for record, status in entries if status.is_removable]

    if not stale:
        console.print("\n[bold green]✓ No stale worktrees found[/bold green]")
        return 0

    console.print(f"\n[yellow]Found {len(stale)} potentially stale worktree(s):[/yellow]\n")

    if dry_run:
        for record, status in stale:
            label = escape(f"{record.name} ({record.branch_name})")
            console.print(f"  • {label} - {_reason_markup(status)}")
        console.print("\n[dim]Run without --dry-run to remove them[/dim]")
        return 0

    if yes:
        selected = [record for record, _ in stale]
    else:
        items = [
            (f"{record.name} ({record.branch_name})", status.value) for record, status in stale
        ]
        checked = [status == WorktreeStatus.MERGED for _, status in stale]
        indices = checkbox_select(items, title="Select worktrees to remove:", checked=checked)
        selected = [stale[i][0] for i in indices or []]

        if not selected:
            console.print("\n[yellow]No worktrees selected for removal[/yellow]")
            return 0

        if not confirm(f"Remove {len(selected)} worktree(s)?", default=True):
            console.print("[yellow]Cancelled[/yellow]")
            return 0

    console.print()
    removed = 0
    failed = 0
    for record in selected:
        try:
            forced = _remove_with_fallback(record, main_repo)
        except GitError as e:
            console.print(
                f"[bold red]✗[/bold red] Failed to remove {escape(record.name)}: {escape(str(e))}"
            )
            failed += 1
            continue
        suffix = " (forced)" if forced else ""
        console.print(f"[bold green]✓[/bold green] Removed {escape(record.name)}{suffix}")
        removed += 1

    console.print()
    if removed:
        console.print(f"[bold green]✓ Removed {removed} worktree(s)[/bold green]")
    if failed:
        console.print(f"[bold red]✗ Failed to remove {failed} worktree(s)[/bold red]")
    return removed


def _reason_markup(status: WorktreeStatus) -> str:
    if status == WorktreeStatus.MERGED:
        return "[green]merged[/green]"
    return "[yellow]local only[/yellow]"


def remove_worktree(identifier: str, force: bool = False) -> bool:
    """
    Remove one worktree, found by branch name, path or directory name.

    Args:
        identifier: Branch name, path, or directory name of the worktree
        force: Skip confirmation and force removal if the plain one fails

    Returns:
        True if the worktree was removed, False if the user cancelled

    Raises:
        NotARepositoryError: If not in a git repository
        WorktreeNotFoundError: If nothing matches identifier
        WorktreeLauncherError: If identifier is the primary worktree
        GitError: If removal fails
    """
    main_repo = get_main_repo_root()
    records = git_list_worktrees(main_repo)

    worktree = find_worktree(records, identifier)
    if worktree is None:
        raise WorktreeNotFoundError(
            f"Worktree not found: {identifier}\nTip: Run 'wt list' to see available worktrees"
        )

    if records and worktree.path == records[0].path:
        raise WorktreeLauncherError("Cannot remove the main worktree")

    console.print("\n[cyan]Worktree to remove:[/cyan]")
    console.print(f"[dim]  Path:   {escape(str(worktree.path))}[/dim]")
    console.print(f"[dim]  Branch: {escape(worktree.display_branch)}[/dim]")

    if not force:
        if not confirm("\nRemove this worktree?", default=False):
            console.print("[yellow]Cancelled[/yellow]")
            return False

    try:
        git_remove_worktree(worktree.path, repo=main_repo, force=False)
        console.print(f"[bold green]✓[/bold green] Removed worktree: {escape(worktree.name)}")
        return True
    except GitError as e:
        if not force:
            raise GitError(f"Failed to remove worktree: {e}\nTip: Use --force to force removal")

    git_remove_worktree(worktree.path, repo=main_repo, force=True)
    console.print(
        f"[bold green]✓[/bold green] Removed worktree (forced): {escape(worktree.name)}"
    )
    return True
