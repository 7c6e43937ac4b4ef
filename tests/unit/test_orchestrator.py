"""Concurrent scan stage tests."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from copyignore.errors import GitCommandError, TraversalFailed
from copyignore.scanner.collector import IgnoredFileCollector
from copyignore.scanner.exclusion import PatternMatcher
from copyignore.scanner.locator import RepositoryLocator
from copyignore.scanner.orchestrator import ScanOrchestrator


class MultiRepoSource:
    """Ignored files per repository name; listed names must exist on disk."""

    def __init__(self, files: dict[str, list[str]], failing: set[str]) -> None:
        self.files = files
        self.failing = failing

    def is_repository(self, directory: Path) -> bool:
        return (directory / ".git").is_dir()

    def list_ignored(self, repository_root: Path) -> list[str]:
        if repository_root.name in self.failing:
            raise GitCommandError("not a git repository", exit_code=128)
        return list(self.files.get(repository_root.name, []))

    def is_ignored(self, repository_root: Path, path: Path) -> bool:
        return False


def _orchestrator(root: Path, source: MultiRepoSource) -> ScanOrchestrator:
    return ScanOrchestrator(
        locator=RepositoryLocator(is_repository=source.is_repository),
        collector=IgnoredFileCollector(source, root),
        scan_workers=3,
    )


def test_scan_streams_entries_and_counts_failures(tmp_path: Path) -> None:
    """Entries from healthy repositories arrive; failures are only counted."""
    for name in ("alpha", "beta", "broken", "skipme"):
        (tmp_path / name / ".git").mkdir(parents=True)
    source = MultiRepoSource(
        {"alpha": [".env"], "beta": ["out.log"], "skipme": ["x.bin"]},
        failing={"broken"},
    )
    received = []
    lock = threading.Lock()

    def sink(entry) -> None:  # type: ignore[no-untyped-def]
        with lock:
            received.append(entry)

    report = _orchestrator(tmp_path, source).scan(
        tmp_path, PatternMatcher.from_patterns(["skipme"]), sink
    )

    assert {entry.relative_path.as_posix() for entry in received} == {
        "alpha/.env",
        "beta/out.log",
    }
    assert report.repositories_found == 3
    assert report.repositories_excluded == 1
    assert report.repositories_failed == 1
    assert report.failed_repositories == [str(tmp_path / "broken")]
    assert report.entries_discovered == 2
    assert report.directories_visited == 5


class ExplodingLocator:
    """Yields one repository, then fails like an unreadable directory."""

    def __init__(self, repository: Path) -> None:
        self.repository = repository
        self.directories_visited = 0

    def iter_repositories(self, root, progress=None):  # type: ignore[no-untyped-def]
        yield self.repository
        raise TraversalFailed(root, OSError(5, "I/O error"))


def test_traversal_failure_cancels_and_propagates(tmp_path: Path) -> None:
    """A fatal traversal error sets the cancellation event and re-raises."""
    repo = tmp_path / "alpha"
    (repo / ".git").mkdir(parents=True)
    source = MultiRepoSource({"alpha": ["a", "b/c"]}, failing=set())
    orchestrator = ScanOrchestrator(
        locator=ExplodingLocator(repo),  # type: ignore[arg-type]
        collector=IgnoredFileCollector(source, tmp_path),
    )
    cancelled = threading.Event()

    with pytest.raises(TraversalFailed):
        orchestrator.scan(
            tmp_path,
            PatternMatcher.from_patterns([]),
            lambda entry: None,
            cancelled=cancelled,
        )
    assert cancelled.is_set()
