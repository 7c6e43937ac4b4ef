"""Concurrent, mtime-driven mirroring of discovered entries."""

from __future__ import annotations

import logging
import os
import queue
import shutil
import stat
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path

from copyignore.constants import DEFAULT_CONCURRENCY, TEMP_SUFFIX
from copyignore.errors import BackupFailed, CopySetupFailed
from copyignore.scanner.exclusion import Excluder
from copyignore.schemas.copy_models import CopyOutcome, CopyResult
from copyignore.schemas.enums import ErrorCause, OutcomeKind
from copyignore.schemas.scan_models import DiscoveredEntry
from copyignore.transfer.backup import BackupManager
from copyignore.transfer.progress import CopyCounters, ProgressCallback

LOGGER = logging.getLogger(__name__)

_COPY_CHUNK_BYTES = 1024 * 1024
_STOP = object()


def temp_path_for(destination: Path) -> Path:
    """Sibling path a file is staged at before the atomic rename."""
    return destination.with_name(f".{destination.name}{TEMP_SUFFIX}")


class CopyEngine:
    """Copy entries into ``destination_root`` with a fixed pool of workers.

    A destination is only rewritten when it is strictly older than its
    source; the previous content is handed to the backup manager first.
    Per-entry failures are counted and never stop the run.
    """

    def __init__(
        self,
        destination_root: Path,
        *,
        excluder: Excluder | None = None,
        backup_manager: BackupManager | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
        verbose: bool = False,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.destination_root = destination_root
        self.excluder = excluder
        self.backup_manager = backup_manager
        self.concurrency = concurrency
        self.verbose = verbose
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._destinations: set[Path] = set()

    @property
    def discovered_destinations(self) -> frozenset[Path]:
        with self._locks_guard:
            return frozenset(self._destinations)

    def run(
        self,
        entries: Iterable[DiscoveredEntry],
        on_progress: ProgressCallback | None = None,
    ) -> CopyResult:
        """Consume ``entries`` until exhausted and return the final tally."""
        try:
            self.destination_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CopySetupFailed(
                f"Cannot create destination root {self.destination_root}: {exc}"
            ) from exc

        counters = CopyCounters()
        error_details: list[str] = []
        details_lock = threading.Lock()
        jobs: queue.Queue[object] = queue.Queue(maxsize=self.concurrency * 4)

        def worker() -> None:
            while True:
                job = jobs.get()
                if job is _STOP:
                    return
                assert isinstance(job, DiscoveredEntry)
                outcome = self._copy_guarded(job)
                snapshot = counters.record(outcome)
                if outcome.kind == OutcomeKind.ERROR:
                    with details_lock:
                        error_details.append(_describe_error(outcome))
                if on_progress is None:
                    continue
                try:
                    on_progress(snapshot, outcome.source, outcome.destination)
                except Exception:  # noqa: BLE001
                    LOGGER.exception(
                        "Progress callback failed for %s", job.absolute_path
                    )

        threads = [
            threading.Thread(
                target=worker, name=f"copy-ignore-copy-{index}", daemon=True
            )
            for index in range(self.concurrency)
        ]
        for thread in threads:
            thread.start()
        try:
            for entry in entries:
                counters.add_total()
                jobs.put(entry)
        finally:
            for _ in threads:
                jobs.put(_STOP)
            for thread in threads:
                thread.join()

        final = counters.snapshot()
        return CopyResult(
            copied=final.copied,
            skipped=final.skipped,
            errors=final.errors,
            vanished=final.vanished,
            total=final.total,
            error_details=sorted(error_details),
        )

    def copy_one(self, entry: DiscoveredEntry) -> CopyOutcome:
        source = entry.absolute_path
        destination = entry.destination(self.destination_root)
        with self._lock_for(destination):
            try:
                source_stat = os.stat(source)
            except FileNotFoundError:
                LOGGER.debug("Source vanished: %s", source)
                return CopyOutcome.vanished(source, destination)
            except OSError as exc:
                self._remember(destination)
                return CopyOutcome.error(
                    source, destination, ErrorCause.SOURCE_STAT_FAILURE, str(exc)
                )
            self._remember(destination)
            if stat.S_ISDIR(source_stat.st_mode):
                return self._copy_directory(source, destination)
            return self._copy_file(source, destination, source_stat)

    def _copy_guarded(self, entry: DiscoveredEntry) -> CopyOutcome:
        try:
            outcome = self.copy_one(entry)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unexpected failure copying %s", entry.absolute_path)
            return CopyOutcome.error(
                entry.absolute_path,
                entry.destination(self.destination_root),
                ErrorCause.COPY_IO_FAILURE,
                str(exc),
            )
        if outcome.kind == OutcomeKind.ERROR:
            LOGGER.warning("%s", _describe_error(outcome))
        elif self.verbose:
            LOGGER.info(
                "%s %s -> %s", outcome.kind.value, outcome.source, outcome.destination
            )
        return outcome

    def _copy_file(
        self,
        source: Path,
        destination: Path,
        source_stat: os.stat_result,
    ) -> CopyOutcome:
        try:
            destination_stat: os.stat_result | None = os.stat(destination)
        except FileNotFoundError:
            destination_stat = None
        except OSError as exc:
            return CopyOutcome.error(
                source, destination, ErrorCause.DESTINATION_STAT_FAILURE, str(exc)
            )

        if destination_stat is not None:
            if destination_stat.st_mtime_ns >= source_stat.st_mtime_ns:
                return CopyOutcome.skipped(source, destination)
            if self.backup_manager is not None:
                try:
                    self.backup_manager.version_before_overwrite(destination)
                except BackupFailed as exc:
                    return CopyOutcome.error(
                        source, destination, ErrorCause.BACKUP_FAILURE, str(exc)
                    )
        return self._write_file(source, destination, source_stat)

    def _write_file(
        self,
        source: Path,
        destination: Path,
        source_stat: os.stat_result,
    ) -> CopyOutcome:
        staging = temp_path_for(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(source, "rb") as reader, open(staging, "wb") as writer:
                shutil.copyfileobj(reader, writer, _COPY_CHUNK_BYTES)
                writer.flush()
                os.fsync(writer.fileno())
        except FileNotFoundError as exc:
            _discard(staging)
            if not os.path.lexists(source):
                return CopyOutcome.vanished(source, destination)
            return CopyOutcome.error(
                source, destination, ErrorCause.COPY_IO_FAILURE, str(exc)
            )
        except OSError as exc:
            _discard(staging)
            return CopyOutcome.error(
                source, destination, ErrorCause.COPY_IO_FAILURE, str(exc)
            )

        try:
            shutil.copymode(source, staging)
        except OSError as exc:
            LOGGER.debug("Could not copy permissions to %s: %s", staging, exc)

        try:
            os.replace(staging, destination)
        except OSError as exc:
            _discard(staging)
            return CopyOutcome.error(
                source, destination, ErrorCause.RENAME_FAILURE, str(exc)
            )

        try:
            os.utime(
                destination, ns=(source_stat.st_atime_ns, source_stat.st_mtime_ns)
            )
        except OSError as exc:
            LOGGER.warning("Failed to set mtime on %s: %s", destination, exc)
        return CopyOutcome.copied(source, destination)

    def _copy_directory(self, source: Path, destination: Path) -> CopyOutcome:
        copied = 0
        failures: list[CopyOutcome] = []
        if os.path.lexists(destination) and not destination.is_dir():
            # A file where the directory belongs is retired before mkdir.
            try:
                self._retire(destination)
            except BackupFailed as exc:
                return CopyOutcome.error(
                    source, destination, ErrorCause.BACKUP_FAILURE, str(exc)
                )
            except OSError as exc:
                return CopyOutcome.error(
                    source, destination, ErrorCause.COPY_IO_FAILURE, str(exc)
                )
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            return CopyOutcome.error(
                source, destination, ErrorCause.COPY_IO_FAILURE, str(exc)
            )

        for child_source, child_destination in self._walk(
            source, destination, failures
        ):
            try:
                child_stat = os.stat(child_source)
            except FileNotFoundError:
                continue
            except OSError as exc:
                failures.append(
                    CopyOutcome.error(
                        child_source,
                        child_destination,
                        ErrorCause.SOURCE_STAT_FAILURE,
                        str(exc),
                    )
                )
                continue
            outcome = self._copy_file(child_source, child_destination, child_stat)
            if outcome.kind == OutcomeKind.COPIED:
                copied += 1
            elif outcome.kind == OutcomeKind.ERROR:
                failures.append(outcome)
            if self.verbose:
                LOGGER.debug("%s %s", outcome.kind.value, child_source)

        if failures:
            first = failures[0]
            assert first.cause is not None
            return CopyOutcome.error(
                source,
                destination,
                first.cause,
                f"{len(failures)} file(s) failed, first {first.source}: {first.detail}",
            )
        if copied:
            return CopyOutcome.copied(source, destination)
        return CopyOutcome.skipped(source, destination)

    def _walk(
        self,
        source: Path,
        destination: Path,
        failures: list[CopyOutcome],
    ) -> Iterator[tuple[Path, Path]]:
        def on_error(exc: OSError) -> None:
            failed = Path(exc.filename) if exc.filename else source
            failures.append(
                CopyOutcome.error(
                    failed, destination, ErrorCause.COPY_IO_FAILURE, str(exc)
                )
            )

        for current, dirnames, filenames in os.walk(source, onerror=on_error):
            current_path = Path(current)
            kept_dirs = []
            for name in sorted(dirnames):
                child = current_path / name
                if self._excluded(child):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs
            target_dir = destination / current_path.relative_to(source)
            for name in sorted(filenames):
                child = current_path / name
                if self._excluded(child):
                    continue
                yield child, target_dir / name

    def _retire(self, destination: Path) -> None:
        if self.backup_manager is not None:
            self.backup_manager.version_before_overwrite(destination)
        else:
            destination.unlink()

    def _excluded(self, path: Path) -> bool:
        if self.excluder is not None and self.excluder.excludes(path):
            if self.verbose:
                LOGGER.debug("Excluded %s", path)
            return True
        return False

    def _remember(self, destination: Path) -> None:
        with self._locks_guard:
            self._destinations.add(destination)

    def _lock_for(self, destination: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(destination)
            if lock is None:
                lock = self._locks[destination] = threading.Lock()
            return lock


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOGGER.debug("Could not remove staging file %s: %s", path, exc)


def _describe_error(outcome: CopyOutcome) -> str:
    cause = outcome.cause.value if outcome.cause is not None else "error"
    return f"{cause}: {outcome.source}: {outcome.detail}"
