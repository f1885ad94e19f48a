"""Tests for git_utils module."""

from pathlib import Path

import pytest

from worktree_launcher.constants import default_worktree_path
from worktree_launcher.exceptions import GitError, InvalidBranchError, NotARepositoryError
from worktree_launcher.git_utils import (
    add_worktree,
    branch_exists,
    find_worktree,
    get_current_branch,
    get_default_branch,
    get_main_repo_root,
    get_repo_root,
    has_command,
    is_branch_merged,
    is_git_repo,
    list_worktrees,
    parse_worktree_porcelain,
    remote_branch_exists,
    remove_worktree,
    validate_branch_name,
)
from worktree_launcher.models import WorktreeRecord

PORCELAIN = """\
worktree /work/repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /work/repo-feature-x
HEAD 2222222222222222222222222222222222222222
branch refs/heads/feature/x

worktree /work/repo-detached
HEAD 3333333333333333333333333333333333333333
detached

worktree /work/repo-gone
HEAD 4444444444444444444444444444444444444444
branch refs/heads/gone
prunable gitdir file points to non-existent location"""


def test_get_repo_root(temp_git_repo: Path) -> None:
    """Test getting repository root."""
    assert get_repo_root() == temp_git_repo
    assert is_git_repo()


def test_get_repo_root_not_in_repo(tmp_path: Path, monkeypatch) -> None:
    """Test error when not in a git repository."""
    non_repo = tmp_path / "not_a_repo"
    non_repo.mkdir()
    monkeypatch.chdir(non_repo)

    assert not is_git_repo()
    with pytest.raises(NotARepositoryError, match="Not a git repository"):
        get_repo_root()


def test_get_main_repo_root_from_linked_worktree(temp_git_repo: Path, git, monkeypatch) -> None:
    """The primary worktree is found even from inside a linked worktree."""
    linked = temp_git_repo.parent / "linked"
    git("worktree", "add", "-b", "linked", str(linked), cwd=temp_git_repo)
    monkeypatch.chdir(linked)

    assert get_repo_root() == linked
    assert get_main_repo_root() == temp_git_repo


def test_get_current_branch(temp_git_repo: Path) -> None:
    assert get_current_branch(temp_git_repo) == "main"


def test_get_current_branch_detached(temp_git_repo: Path, git) -> None:
    """Test error when in detached HEAD state."""
    git("checkout", "--detach", "HEAD", cwd=temp_git_repo)

    with pytest.raises(InvalidBranchError, match="detached HEAD"):
        get_current_branch(temp_git_repo)


def test_branch_exists(temp_git_repo: Path, git) -> None:
    assert branch_exists("main", temp_git_repo)
    assert not branch_exists("nonexistent-branch-xyz", temp_git_repo)

    git("branch", "test-branch", cwd=temp_git_repo)
    assert branch_exists("test-branch", temp_git_repo)


class TestParseWorktreePorcelain:
    def test_parses_all_blocks(self) -> None:
        records = parse_worktree_porcelain(PORCELAIN)

        assert [r.path for r in records] == [
            Path("/work/repo"),
            Path("/work/repo-feature-x"),
            Path("/work/repo-detached"),
            Path("/work/repo-gone"),
        ]

    def test_branch_prefix_stripped(self) -> None:
        records = parse_worktree_porcelain(PORCELAIN)
        assert records[0].branch_name == "main"
        assert records[1].branch_name == "feature/x"
        assert records[1].head == "2222222222222222222222222222222222222222"

    def test_detached_record(self) -> None:
        detached = parse_worktree_porcelain(PORCELAIN)[2]
        assert detached.is_detached
        assert detached.branch_name is None
        assert detached.display_branch == "(detached)"

    def test_prunable_last_block_without_blank_line(self) -> None:
        gone = parse_worktree_porcelain(PORCELAIN)[3]
        assert gone.branch_name == "gone"
        assert gone.is_prunable
        assert not gone.is_detached

    def test_bare_repository(self) -> None:
        records = parse_worktree_porcelain("worktree /srv/repo.git\nbare\n\n")
        assert records == [WorktreeRecord(path=Path("/srv/repo.git"), is_bare=True)]

    def test_empty_output(self) -> None:
        assert parse_worktree_porcelain("") == []

    def test_unknown_lines_ignored(self) -> None:
        records = parse_worktree_porcelain(
            "worktree /work/repo\nHEAD abc\nbranch refs/heads/main\nlocked reason\n"
        )
        assert len(records) == 1
        assert records[0].branch_name == "main"


def test_list_worktrees(temp_git_repo: Path, git) -> None:
    """The primary worktree is listed first, linked worktrees after it."""
    feature_path = temp_git_repo.parent / "feature"
    git("worktree", "add", "-b", "feature-branch", str(feature_path), cwd=temp_git_repo)

    records = list_worktrees(temp_git_repo)

    assert len(records) == 2
    assert records[0].path == temp_git_repo
    assert records[0].branch_name == "main"
    assert records[1].path == feature_path
    assert records[1].branch_name == "feature-branch"


class TestFindWorktree:
    records = parse_worktree_porcelain(PORCELAIN)

    def test_by_branch(self) -> None:
        assert find_worktree(self.records, "feature/x").path == Path("/work/repo-feature-x")

    def test_by_full_path(self) -> None:
        assert find_worktree(self.records, "/work/repo-gone").branch_name == "gone"

    def test_by_directory_name(self) -> None:
        assert find_worktree(self.records, "repo-detached").is_detached

    def test_by_path_suffix(self) -> None:
        assert find_worktree(self.records, "feature-x").branch_name == "feature/x"

    def test_not_found(self) -> None:
        assert find_worktree(self.records, "nope") is None
        assert find_worktree(self.records, "") is None

    def test_by_relative_path(self, temp_git_repo: Path, git) -> None:
        feature_path = temp_git_repo.parent / "rel-feature"
        git("worktree", "add", "-b", "rel", str(feature_path), cwd=temp_git_repo)

        found = find_worktree(list_worktrees(temp_git_repo), "../rel-feature")
        assert found is not None
        assert found.branch_name == "rel"


class TestValidateBranchName:
    @pytest.mark.parametrize(
        "name",
        ["", "   ", "-rf", "--force", "..", "a..b", "../escape", "feature/../../etc", "x" * 251],
    )
    def test_rejects(self, name: str) -> None:
        with pytest.raises(InvalidBranchError):
            validate_branch_name(name)

    @pytest.mark.parametrize("name", ["fix-auth", "feature/api", "a.b", "x" * 250])
    def test_accepts(self, name: str) -> None:
        validate_branch_name(name)

    def test_messages(self) -> None:
        with pytest.raises(InvalidBranchError, match="cannot start with -"):
            validate_branch_name("-x")
        with pytest.raises(InvalidBranchError, match=r"cannot contain \.\."):
            validate_branch_name("a..b")


def test_default_worktree_path(tmp_path: Path) -> None:
    repo = tmp_path / "myproject"
    repo.mkdir()

    parent = tmp_path.resolve()
    assert default_worktree_path(repo, "fix-auth") == parent / "myproject-fix-auth"
    assert default_worktree_path(repo, "feature/api") == parent / "myproject-feature-api"


class TestDefaultBranch:
    def test_main_fallback(self, temp_git_repo: Path) -> None:
        assert get_default_branch(temp_git_repo) == "main"

    def test_master_fallback(self, temp_git_repo: Path, git) -> None:
        git("branch", "-m", "main", "master", cwd=temp_git_repo)
        assert get_default_branch(temp_git_repo) == "master"

    def test_no_candidate(self, temp_git_repo: Path, git) -> None:
        git("branch", "-m", "main", "trunk", cwd=temp_git_repo)
        assert get_default_branch(temp_git_repo) == "main"

    def test_remote_head(self, temp_git_repo: Path, origin_remote: Path, git) -> None:
        git("checkout", "-b", "develop", cwd=temp_git_repo)
        git("push", "-u", "origin", "develop", cwd=temp_git_repo)
        git("remote", "set-head", "origin", "develop", cwd=temp_git_repo)

        assert get_default_branch(temp_git_repo) == "develop"


class TestIsBranchMerged:
    def test_branch_without_new_commits_is_merged(self, temp_git_repo: Path, git) -> None:
        git("branch", "fresh", cwd=temp_git_repo)
        assert is_branch_merged("fresh", "main", temp_git_repo)

    def test_branch_with_commits_is_not_merged(
        self, temp_git_repo: Path, git, commit_file
    ) -> None:
        git("checkout", "-b", "work", cwd=temp_git_repo)
        commit_file(temp_git_repo, "work.txt")
        git("checkout", "main", cwd=temp_git_repo)

        assert not is_branch_merged("work", "main", temp_git_repo)

        git("merge", "--ff-only", "work", cwd=temp_git_repo)
        assert is_branch_merged("work", "main", temp_git_repo)

    def test_unknown_branch_raises(self, temp_git_repo: Path) -> None:
        with pytest.raises(GitError):
            is_branch_merged("does-not-exist", "main", temp_git_repo)


class TestRemoteBranchExists:
    def test_no_remote_configured(self, temp_git_repo: Path) -> None:
        with pytest.raises(GitError, match="No remote 'origin' configured"):
            remote_branch_exists("main", temp_git_repo)

    def test_pushed_and_unpushed(self, temp_git_repo: Path, origin_remote: Path, git) -> None:
        git("branch", "local-only", cwd=temp_git_repo)

        assert remote_branch_exists("main", temp_git_repo)
        assert not remote_branch_exists("local-only", temp_git_repo)

    def test_other_remote_name(self, temp_git_repo: Path, origin_remote: Path) -> None:
        with pytest.raises(GitError):
            remote_branch_exists("main", temp_git_repo, remote="upstream")


class TestAddRemoveWorktree:
    def test_creates_new_branch(self, temp_git_repo: Path) -> None:
        path = temp_git_repo.parent / "repo-new"
        add_worktree(path, "new-branch", repo=temp_git_repo)

        assert (path / "README.md").exists()
        assert branch_exists("new-branch", temp_git_repo)

    def test_checks_out_existing_branch(self, temp_git_repo: Path, git, commit_file) -> None:
        git("checkout", "-b", "existing", cwd=temp_git_repo)
        commit_file(temp_git_repo, "existing.txt")
        git("checkout", "main", cwd=temp_git_repo)

        path = temp_git_repo.parent / "repo-existing"
        add_worktree(path, "existing", repo=temp_git_repo)

        assert (path / "existing.txt").exists()

    def test_start_point(self, temp_git_repo: Path, git, commit_file) -> None:
        git("checkout", "-b", "base", cwd=temp_git_repo)
        commit_file(temp_git_repo, "base.txt")
        git("checkout", "main", cwd=temp_git_repo)

        path = temp_git_repo.parent / "repo-from-base"
        add_worktree(path, "from-base", repo=temp_git_repo, start_point="base")

        assert (path / "base.txt").exists()

    def test_rejects_invalid_name(self, temp_git_repo: Path) -> None:
        with pytest.raises(InvalidBranchError):
            add_worktree(temp_git_repo.parent / "x", "a..b", repo=temp_git_repo)

    def test_remove_dirty_needs_force(self, temp_git_repo: Path) -> None:
        path = temp_git_repo.parent / "repo-dirty"
        add_worktree(path, "dirty", repo=temp_git_repo)
        (path / "scratch.txt").write_text("uncommitted")

        with pytest.raises(GitError):
            remove_worktree(path, repo=temp_git_repo)
        assert path.exists()

        remove_worktree(path, repo=temp_git_repo, force=True)
        assert not path.exists()


def test_has_command() -> None:
    """Test checking if command exists."""
    assert has_command("git")
    assert not has_command("definitely-not-a-real-command-xyz-12345")
