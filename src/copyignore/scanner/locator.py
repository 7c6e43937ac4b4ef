"""Breadth-first discovery of repository roots under a search directory."""

from __future__ import annotations

import logging
import os
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from copyignore.errors import TraversalFailed
from copyignore.scanner.git_client import has_repository_marker

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[Path], None]
RepositoryPredicate = Callable[[Path], bool]


def canonical_key(path: Path) -> str:
    """Visited-set key: symlinks resolved, case folded where the OS folds."""
    return os.path.normcase(os.path.realpath(path))


class RepositoryLocator:
    """Find repository roots without descending into any of them.

    Nested repositories are invisible: the first repository boundary on a
    path wins.
    """

    def __init__(
        self,
        *,
        is_repository: RepositoryPredicate = has_repository_marker,
        skip: Iterable[Path] = (),
    ) -> None:
        self._is_repository = is_repository
        self._skip = {canonical_key(path) for path in skip}
        self.directories_visited = 0

    def locate(
        self, root: Path, progress: ProgressCallback | None = None
    ) -> list[Path]:
        return list(self.iter_repositories(root, progress))

    def iter_repositories(
        self,
        root: Path,
        progress: ProgressCallback | None = None,
    ) -> Iterator[Path]:
        """Yield repository roots in breadth-first order as they are found."""
        root_key = canonical_key(root)
        queue: deque[Path] = deque([root])
        visited: set[str] = set()

        while queue:
            current = queue.popleft()
            key = canonical_key(current)
            if key in visited or key in self._skip:
                continue
            visited.add(key)
            self.directories_visited += 1

            if progress is not None:
                progress(current)

            if self._is_repository(current):
                yield current
                continue

            try:
                children = sorted(os.scandir(current), key=lambda item: item.name)
            except PermissionError:
                LOGGER.debug("Permission denied, skipping %s", current)
                continue
            except OSError as exc:
                raise TraversalFailed(current, exc) from exc

            for child in children:
                try:
                    if not child.is_dir():
                        continue
                except PermissionError:
                    continue
                child_path = Path(child.path)
                if not _is_within(canonical_key(child_path), root_key):
                    continue
                queue.append(child_path)


def _is_within(key: str, root_key: str) -> bool:
    if key == root_key:
        return True
    prefix = root_key if root_key.endswith(os.sep) else root_key + os.sep
    return key.startswith(prefix)
