"""Shared fixtures: isolated HOME, throwaway git repositories, launch stubs."""

import subprocess
from pathlib import Path

import pytest


def run_git(*args: str, cwd: Path) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory, monkeypatch) -> Path:
    """Keep config files and global git config out of the real home."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("WT_CONFIG_PATH", raising=False)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    return home


@pytest.fixture
def git():
    """Run a git command in a directory, failing the test on error."""
    return run_git


@pytest.fixture
def temp_git_repo(tmp_path: Path, monkeypatch) -> Path:
    """A repository with one commit on 'main', used as the working directory."""
    repo = (tmp_path / "repo").resolve()
    repo.mkdir()
    run_git("init", cwd=repo)
    run_git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo)
    run_git("config", "user.email", "test@example.com", cwd=repo)
    run_git("config", "user.name", "Test", cwd=repo)
    run_git("config", "commit.gpgsign", "false", cwd=repo)
    (repo / "README.md").write_text("test\n")
    run_git("add", ".", cwd=repo)
    run_git("commit", "-m", "init", cwd=repo)

    monkeypatch.chdir(repo)
    return repo


@pytest.fixture
def origin_remote(temp_git_repo: Path, tmp_path: Path) -> Path:
    """A bare 'origin' remote with 'main' pushed to it."""
    remote = (tmp_path / "origin.git").resolve()
    run_git("init", "--bare", str(remote), cwd=tmp_path)
    run_git("remote", "add", "origin", str(remote), cwd=temp_git_repo)
    run_git("push", "-u", "origin", "main", cwd=temp_git_repo)
    return remote


@pytest.fixture
def disable_launch(monkeypatch) -> list:
    """Record AI tool launches instead of running them; every tool is available."""
    calls: list = []

    def fake_launch(path, tool, tools=None):
        calls.append((Path(path), tool))

    monkeypatch.setattr("worktree_launcher.core.launch_ai_tool", fake_launch)
    monkeypatch.setattr("worktree_launcher.core.is_tool_available", lambda tool, tools=None: True)
    return calls


def _commit_file(worktree: Path, name: str, content: str = "content\n") -> None:
    (worktree / name).write_text(content)
    run_git("add", name, cwd=worktree)
    run_git("commit", "-m", f"Add {name}", cwd=worktree)


@pytest.fixture
def commit_file():
    """Create a file in a worktree and commit it."""
    return _commit_file
