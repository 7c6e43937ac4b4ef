"""Per-repository enumeration of ignored paths with directory aggregation."""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from collections.abc import Iterator
from pathlib import Path, PurePath

from copyignore.constants import GIT_MARKER
from copyignore.errors import GitCommandError, RepositoryEnumerationFailed
from copyignore.scanner.exclusion import Excluder
from copyignore.scanner.git_client import IgnoreSource
from copyignore.schemas.scan_models import DiscoveredEntry

LOGGER = logging.getLogger(__name__)

COLLAPSE_THRESHOLD = 2


class IgnoredFileCollector:
    """Turn one repository's ignored paths into discovered entries.

    Ignored top-level directories are emitted whole before the (possibly slow)
    file listing runs; remaining files are grouped so that any directory with
    two or more ignored files is copied as one entry.
    """

    def __init__(self, source: IgnoreSource, search_root: Path) -> None:
        self.source = source
        self.search_root = search_root

    def collect(
        self, repository_root: Path, excluder: Excluder
    ) -> list[DiscoveredEntry]:
        return list(self.iter_entries(repository_root, excluder))

    def iter_entries(
        self,
        repository_root: Path,
        excluder: Excluder,
    ) -> Iterator[DiscoveredEntry]:
        ignored_dirs: set[PurePath] = set()
        for directory in self._ignored_top_level_dirs(repository_root, excluder):
            ignored_dirs.add(PurePath(directory.name))
            yield self._entry(repository_root, directory)

        try:
            ignored_files = self.source.list_ignored(repository_root)
        except (GitCommandError, OSError) as exc:
            raise RepositoryEnumerationFailed(repository_root, exc) from exc

        candidates: list[PurePath] = []
        for relative in ignored_files:
            relative_path = PurePath(relative)
            absolute = repository_root / relative_path
            if excluder.excludes(absolute):
                LOGGER.debug("Excluded %s", absolute)
                continue
            if _is_under_any(relative_path, ignored_dirs):
                continue
            candidates.append(relative_path)

        for relative_path in collapse_redundant(candidates, ignored_dirs):
            yield self._entry(repository_root, repository_root / relative_path)

    def _ignored_top_level_dirs(
        self,
        repository_root: Path,
        excluder: Excluder,
    ) -> list[Path]:
        try:
            children = sorted(os.scandir(repository_root), key=lambda item: item.name)
        except OSError as exc:
            raise RepositoryEnumerationFailed(repository_root, exc) from exc

        ignored: list[Path] = []
        for child in children:
            if child.name == GIT_MARKER:
                continue
            try:
                if not child.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            directory = Path(child.path)
            if excluder.excludes(directory):
                LOGGER.debug("Excluded %s", directory)
                continue
            try:
                if self.source.is_ignored(repository_root, directory):
                    ignored.append(directory)
            except GitCommandError as exc:
                LOGGER.debug("Ignore probe failed for %s: %s", directory, exc)
        return ignored

    def _entry(self, repository_root: Path, absolute: Path) -> DiscoveredEntry:
        return DiscoveredEntry(
            absolute_path=absolute,
            relative_path=relative_to_search_root(absolute, self.search_root),
            repository_root=repository_root,
        )


def relative_to_search_root(path: Path, search_root: Path) -> Path:
    try:
        return path.relative_to(search_root)
    except ValueError:
        return Path(os.path.relpath(path, search_root))


def collapse_redundant(
    files: list[PurePath],
    ignored_dirs: set[PurePath] | None = None,
) -> list[PurePath]:
    """Replace directories holding two or more ignored files with the directory.

    Paths are relative to the repository root. The repository root itself is
    never collapsed, directories in ``ignored_dirs`` are already represented,
    and anything nested under a collapsed directory is dropped.
    """
    ignored_dirs = ignored_dirs or set()
    by_parent: dict[PurePath, list[PurePath]] = defaultdict(list)
    for relative in files:
        by_parent[relative.parent].append(relative)

    collapsed = {
        parent
        for parent, members in by_parent.items()
        if len(members) >= COLLAPSE_THRESHOLD
        and parent != PurePath(".")
        and parent not in ignored_dirs
    }
    outermost = {
        directory
        for directory in collapsed
        if not _is_under_any(directory, collapsed - {directory})
    }

    result: list[PurePath] = sorted(outermost)
    for parent in sorted(by_parent):
        if parent in collapsed or _is_under_any(parent, outermost):
            continue
        result.extend(sorted(by_parent[parent]))
    return result


def _is_under_any(path: PurePath, directories: set[PurePath]) -> bool:
    return any(
        path == directory or directory in path.parents for directory in directories
    )
