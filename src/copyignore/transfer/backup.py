"""Versioned history of overwritten and orphaned backup content."""

from __future__ import annotations

import logging
import os
import re
import shutil
import threading
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from copyignore.constants import (
    DEFAULT_BACKUP_KEEP,
    TEMP_SUFFIX,
    TIMESTAMP_FORMAT,
    TIMESTAMP_PATTERN,
)
from copyignore.errors import BackupFailed

LOGGER = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(TIMESTAMP_PATTERN)


def make_timestamp(now: datetime | None = None) -> str:
    """Fixed-width, lexicographically sortable run timestamp."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def is_temp_file(name: str) -> bool:
    return name.startswith(".") and name.endswith(TEMP_SUFFIX)


def _path_key(path: Path | str) -> str:
    return os.path.normcase(os.path.abspath(path))


class BackupManager:
    """Owns ``history_root/<timestamp>/<relative path>`` and its retention.

    All versions created during one run share a single timestamp directory.
    """

    def __init__(
        self,
        backup_root: Path,
        history_root: Path,
        timestamp: str | None = None,
        *,
        keep: int = DEFAULT_BACKUP_KEEP,
    ) -> None:
        if keep < 1:
            raise ValueError("keep must be >= 1")
        self.backup_root = backup_root
        self.history_root = history_root
        self.timestamp = timestamp or make_timestamp()
        if not _TIMESTAMP_RE.match(self.timestamp):
            raise ValueError(f"Invalid timestamp: {self.timestamp}")
        self.keep = keep
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def run_dir(self) -> Path:
        return self.history_root / self.timestamp

    def version_before_overwrite(self, destination: Path) -> Path:
        """Move ``destination`` into this run's history slot and prune.

        Returns the version path. Raises ``BackupFailed`` if the move fails or
        this run already holds a version of the same path; the destination is
        then left in place.
        """
        relative = self._relative(destination)
        target = self.run_dir / relative
        with self._lock_for(relative):
            if os.path.lexists(target):
                raise BackupFailed(
                    destination, FileExistsError(f"history slot {target} is taken")
                )
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(os.fspath(destination), os.fspath(target))
            except OSError as exc:
                raise BackupFailed(destination, exc) from exc
            LOGGER.debug("Versioned %s -> %s", destination, target)
            self._prune_locked(relative)
        return target

    def list_versions(self, relative: Path) -> list[Path]:
        """Timestamp directories holding ``relative``, newest first."""
        if not self.history_root.is_dir():
            return []
        versions = [
            child
            for child in self.history_root.iterdir()
            if _TIMESTAMP_RE.match(child.name)
            and child.is_dir()
            and os.path.lexists(child / relative)
        ]
        return sorted(versions, key=lambda item: item.name, reverse=True)

    def prune(self, relative: Path) -> list[Path]:
        with self._lock_for(relative):
            return self._prune_locked(relative)

    def cleanup_orphans(self, discovered: Iterable[Path]) -> int:
        """Version and remove backup files whose source no longer exists.

        A file survives when it, or any directory above it, is one of the
        ``discovered`` destinations of the current run.
        """
        if not self.backup_root.is_dir():
            return 0
        keep_keys = {_path_key(path) for path in discovered}
        if _path_key(self.backup_root) in keep_keys:
            return 0
        history_key = _path_key(self.history_root)
        removed = 0

        for current, dirnames, filenames in os.walk(self.backup_root):
            dirnames[:] = sorted(
                name
                for name in dirnames
                if _path_key(os.path.join(current, name)) not in keep_keys
                and _path_key(os.path.join(current, name)) != history_key
            )
            for name in sorted(filenames):
                if is_temp_file(name):
                    continue
                path = Path(current) / name
                if _path_key(path) in keep_keys:
                    continue
                LOGGER.info("Source gone, retiring %s", path)
                try:
                    self.version_before_overwrite(path)
                except BackupFailed as exc:
                    LOGGER.warning("%s", exc)
                    continue
                removed += 1
                _remove_empty_parents(path.parent, self.backup_root)
        return removed

    def _prune_locked(self, relative: Path) -> list[Path]:
        removed: list[Path] = []
        for version_dir in self.list_versions(relative)[self.keep :]:
            stale = version_dir / relative
            try:
                if stale.is_dir() and not stale.is_symlink():
                    shutil.rmtree(stale)
                else:
                    stale.unlink()
            except OSError as exc:
                LOGGER.warning("Failed to prune %s: %s", stale, exc)
                continue
            removed.append(stale)
            LOGGER.debug("Pruned %s", stale)
            _remove_empty_parents(stale.parent, self.history_root)
        return removed

    def _relative(self, destination: Path) -> Path:
        try:
            return destination.relative_to(self.backup_root)
        except ValueError as exc:
            raise BackupFailed(destination, exc) from exc

    def _lock_for(self, relative: Path) -> threading.Lock:
        key = relative.as_posix()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


def _remove_empty_parents(directory: Path, stop: Path) -> None:
    """Remove empty directories from ``directory`` upwards, never ``stop``."""
    stop_key = _path_key(stop)
    current = directory
    while _path_key(current) != stop_key and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent
