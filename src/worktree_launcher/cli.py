"""Typer-based CLI interface for worktree-launcher."""

import typer
from rich.markup import escape

from . import __version__
from .console import get_console
from .core import clean_worktrees, create_worktree, list_worktrees, remove_worktree
from .exceptions import WorktreeLauncherError
from .git_utils import get_main_repo_root, list_worktrees as git_list_worktrees
from .interactive import run_interactive
from .logging_config import setup_logging

app = typer.Typer(
    name="wt",
    help="CLI tool to streamline git worktrees with AI coding assistants",
    add_completion=True,
)
console = get_console()


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(code=1)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"worktree-launcher version {__version__}")
        raise typer.Exit()


def complete_worktrees() -> list[str]:
    """Autocomplete function for worktree branch and directory names."""
    try:
        records = git_list_worktrees(get_main_repo_root())
    except Exception:
        return []
    names = []
    for record in records[1:]:
        names.append(record.branch_name or record.name)
    return names


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every git and tool command",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Delete worktrees in the interactive browser without confirmation",
    ),
) -> None:
    """
    Browse worktrees interactively when run without a command.

    Keys: n new, d delete, c Claude Code, x Codex, p push, r refresh,
    Enter print cd command, q quit.
    """
    setup_logging(verbose=verbose)

    if ctx.invoked_subcommand is not None:
        return

    try:
        message = run_interactive(force=force)
    except WorktreeLauncherError as e:
        _fail(e)
    if message:
        console.print(f"\n{escape(message)}\n")


@app.command()
def new(
    branch_name: str = typer.Argument(
        ..., help="Branch to create the worktree for (e.g. 'fix-auth', 'feature/api')"
    ),
    install: bool = typer.Option(
        False,
        "--install",
        "-i",
        help="Run package manager install after creating worktree",
    ),
    skip_launch: bool = typer.Option(
        False,
        "--skip-launch",
        "-s",
        help="Create worktree without launching AI assistant",
    ),
    push: bool = typer.Option(
        False,
        "--push",
        help="Push the branch to the remote and set upstream",
    ),
    base: str | None = typer.Option(
        None,
        "--base",
        "-b",
        help="Start point for a new branch (default: current HEAD)",
    ),
    tool: str | None = typer.Option(
        None,
        "--tool",
        "-t",
        help="AI tool to launch (e.g. 'claude', 'codex'); asks when omitted",
    ),
) -> None:
    """
    Create a new worktree and launch AI assistant.

    Creates the worktree at ../<repo>-<branch>, copies .env files from the
    main checkout into it, then launches the chosen AI assistant there.

    Example:
        wt new fix-auth
        wt new feature/api --install --tool codex
        wt new hotfix --skip-launch
    """
    try:
        create_worktree(
            branch_name=branch_name,
            install=install,
            skip_launch=skip_launch,
            push=push,
            base_branch=base,
            tool=tool,
        )
    except WorktreeLauncherError as e:
        _fail(e)


app.command(name="create", hidden=True)(new)


@app.command(name="list")
def list_cmd() -> None:
    """
    List all worktrees for the current repository.

    Shows each worktree's path, branch and status (primary, detached, merged,
    local-only or active).
    """
    try:
        list_worktrees()
    except WorktreeLauncherError as e:
        _fail(e)


app.command(name="ls", hidden=True)(list_cmd)


@app.command()
def clean(
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show stale worktrees without removing them",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Remove all stale worktrees without prompting",
    ),
) -> None:
    """
    Remove worktrees for merged or deleted branches.

    Prunes stale worktree references, then offers worktrees whose branch is
    merged into the default branch or missing on the remote for removal.
    """
    try:
        clean_worktrees(dry_run=dry_run, yes=yes)
    except WorktreeLauncherError as e:
        _fail(e)


@app.command()
def remove(
    name: str = typer.Argument(
        ...,
        help="Branch name, path or directory name of the worktree",
        autocompletion=complete_worktrees,
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Force removal even if there are uncommitted changes",
    ),
) -> None:
    """
    Remove a specific worktree.

    Example:
        wt remove fix-auth
        wt rm ../myproject-fix-auth --force
    """
    try:
        remove_worktree(name, force=force)
    except WorktreeLauncherError as e:
        _fail(e)


app.command(name="rm", hidden=True)(remove)


if __name__ == "__main__":
    app()
