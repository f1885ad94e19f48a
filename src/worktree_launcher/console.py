"""Shared rich console."""

from rich.console import Console

_console: Console | None = None


def get_console() -> Console:
    """Return the process-wide console, creating it on first use."""
    global _console
    if _console is None:
        _console = Console(highlight=False, soft_wrap=True)
    return _console
