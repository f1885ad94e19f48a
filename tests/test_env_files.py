"""Tests for env file copying."""

from pathlib import Path

import pytest

from worktree_launcher.env_files import copy_env_files, find_env_files, is_env_file


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        (".env", True),
        (".env.local", True),
        (".env.development.local", True),
        (".env.example", False),
        (".env.sample", False),
        (".env.template", False),
        (".envrc", False),
        ("env", False),
        ("config.env", False),
    ],
)
def test_is_env_file(name: str, expected: bool) -> None:
    assert is_env_file(name) is expected


def test_find_env_files(tmp_path: Path) -> None:
    """Only top-level env files are found, sorted, templates and directories excluded."""
    for name in (".env.local", ".env", ".env.example", ".envrc"):
        (tmp_path / name).write_text(name)
    (tmp_path / ".env.d").mkdir()
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / ".env").write_text("nested")

    assert find_env_files(tmp_path) == [".env", ".env.local"]


def test_copy_env_files(tmp_path: Path) -> None:
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    dst.mkdir()
    (src / ".env").write_text("SECRET=1\n")
    (src / ".env.test").write_text("SECRET=2\n")
    (src / ".env.example").write_text("SECRET=\n")

    copied, failed = copy_env_files(src, dst)

    assert copied == [".env", ".env.test"]
    assert failed == []
    assert (dst / ".env").read_text() == "SECRET=1\n"
    assert (dst / ".env.test").read_text() == "SECRET=2\n"
    assert not (dst / ".env.example").exists()


def test_copy_env_files_none_found(tmp_path: Path) -> None:
    (tmp_path / "dst").mkdir()
    assert copy_env_files(tmp_path, tmp_path / "dst") == ([], [])


def test_copy_env_files_skips_failures(tmp_path: Path, capsys) -> None:
    """A file that cannot be written is reported back; the others still copy."""
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    dst.mkdir()
    (src / ".env").write_text("A=1\n")
    (src / ".env.local").write_text("B=2\n")
    # copy2 copies into a directory target, so nest one more to make it fail
    (dst / ".env" / ".env").mkdir(parents=True)

    copied, failed = copy_env_files(src, dst)

    assert copied == [".env.local"]
    assert failed == [".env"]
    # Nothing may be written while a full-screen UI owns the terminal
    assert capsys.readouterr().err == ""
