"""Git collaborator parsing and marker detection tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from copyignore.errors import GitCommandError
from copyignore.scanner.git_client import (
    GitClient,
    has_repository_marker,
    parse_nul_separated,
)


def test_parse_nul_separated_drops_empty_and_parent_entries() -> None:
    """NUL-separated output should be cleaned and filtered."""
    output = "a.log\0build/out.bin\0\0./dist/x\0../escape\0.\0"
    assert parse_nul_separated(output) == ["a.log", "build/out.bin", "dist/x"]


def test_marker_directory_and_linked_worktree(tmp_path: Path) -> None:
    """A `.git` dir or a `.git` file pointing at a real dir marks a repository."""
    plain = tmp_path / "plain"
    (plain / ".git").mkdir(parents=True)
    assert has_repository_marker(plain)

    gitdir = tmp_path / "real-gitdir"
    gitdir.mkdir()
    linked = tmp_path / "linked"
    linked.mkdir()
    (linked / ".git").write_text("gitdir: ../real-gitdir\n", encoding="utf-8")
    assert has_repository_marker(linked)

    dangling = tmp_path / "dangling"
    dangling.mkdir()
    (dangling / ".git").write_text("gitdir: /nowhere/at/all\n", encoding="utf-8")
    assert not has_repository_marker(dangling)

    assert not has_repository_marker(tmp_path)


def test_missing_git_executable_raises(tmp_path: Path) -> None:
    """A missing git binary should surface as GitCommandError."""
    client = GitClient(git_executable="copy-ignore-no-such-git")
    with pytest.raises(GitCommandError):
        client.list_ignored(tmp_path)
