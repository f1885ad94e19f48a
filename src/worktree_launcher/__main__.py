"""Allow running as ``python -m worktree_launcher``."""

from .cli import app

if __name__ == "__main__":
    app()
