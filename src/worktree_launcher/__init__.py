"""Git worktree launcher for AI coding assistants."""

__version__ = "1.1.0"
