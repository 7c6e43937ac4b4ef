"""Per-repository ignored path collection tests."""

from __future__ import annotations

from pathlib import Path, PurePath

import pytest

from copyignore.errors import GitCommandError, RepositoryEnumerationFailed
from copyignore.scanner.collector import IgnoredFileCollector, collapse_redundant
from copyignore.scanner.exclusion import PatternMatcher


class FakeIgnoreSource:
    """In-memory stand-in for the git collaborator."""

    def __init__(
        self,
        ignored_files: list[str],
        ignored_dirs: set[str] | None = None,
        *,
        fail: bool = False,
    ) -> None:
        self.ignored_files = ignored_files
        self.ignored_dirs = ignored_dirs or set()
        self.fail = fail
        self.probed: list[str] = []

    def is_repository(self, directory: Path) -> bool:
        return (directory / ".git").exists()

    def list_ignored(self, repository_root: Path) -> list[str]:
        if self.fail:
            raise GitCommandError("ls-files failed", exit_code=128)
        return list(self.ignored_files)

    def is_ignored(self, repository_root: Path, path: Path) -> bool:
        relative = path.relative_to(repository_root).as_posix()
        self.probed.append(relative)
        return relative in self.ignored_dirs


def _make_repo(root: Path, dirs: list[str]) -> Path:
    repo = root / "proj"
    (repo / ".git").mkdir(parents=True)
    for name in dirs:
        (repo / name).mkdir(parents=True, exist_ok=True)
    return repo


def _relative(entries) -> set[str]:  # type: ignore[no-untyped-def]
    return {entry.relative_path.as_posix() for entry in entries}


def test_collects_dirs_files_and_collapses_groups(tmp_path: Path) -> None:
    """Ignored top-level dirs, collapsed groups and lone files become entries."""
    repo = _make_repo(tmp_path, ["build", "vendor", "logs", "src"])
    source = FakeIgnoreSource(
        [
            "debug.log",
            "temp.tmp",
            "vendor/a.php",
            "vendor/b.php",
            "build/x.o",
            "build/y.o",
            "logs/one.log",
        ],
        {"build"},
    )
    collector = IgnoredFileCollector(source, tmp_path)

    entries = collector.collect(repo, PatternMatcher.from_patterns([]))

    assert _relative(entries) == {
        "proj/build",
        "proj/vendor",
        "proj/debug.log",
        "proj/temp.tmp",
        "proj/logs/one.log",
    }
    assert all(entry.repository_root == repo for entry in entries)
    assert ".git" not in source.probed


def test_exclusions_apply_to_dirs_and_files(tmp_path: Path) -> None:
    """Excluded directories are never probed and excluded files are dropped."""
    repo = _make_repo(tmp_path, ["build"])
    source = FakeIgnoreSource(
        ["debug.log", "temp.tmp", "build/x.o", "build/y.o"], {"build"}
    )
    collector = IgnoredFileCollector(source, tmp_path)

    entries = collector.collect(repo, PatternMatcher.from_patterns(["build", "*.tmp"]))

    assert _relative(entries) == {"proj/debug.log"}
    assert "build" not in source.probed


def test_enumeration_failure_is_reported(tmp_path: Path) -> None:
    """A failing ignored-file listing should raise RepositoryEnumerationFailed."""
    repo = _make_repo(tmp_path, [])
    collector = IgnoredFileCollector(FakeIgnoreSource([], fail=True), tmp_path)

    with pytest.raises(RepositoryEnumerationFailed) as excinfo:
        collector.collect(repo, PatternMatcher.from_patterns([]))
    assert excinfo.value.repository_root == repo


def test_collapse_keeps_only_outermost_directories() -> None:
    """Nested collapsible directories fold into the outermost one."""
    files = [
        PurePath("a/b/1"),
        PurePath("a/b/2"),
        PurePath("a/3"),
        PurePath("a/4"),
        PurePath("x/only"),
        PurePath("top.txt"),
        PurePath("other.txt"),
    ]
    assert collapse_redundant(files) == [
        PurePath("a"),
        PurePath("other.txt"),
        PurePath("top.txt"),
        PurePath("x/only"),
    ]


def test_collapse_skips_directories_already_emitted() -> None:
    """Directories reported as ignored up front are not collapsed again."""
    files = [PurePath("cache/1"), PurePath("cache/2")]
    assert collapse_redundant(files, {PurePath("cache")}) == files
