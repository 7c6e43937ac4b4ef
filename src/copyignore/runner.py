"""Wires scanning, copying and history maintenance into one run."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from pathlib import Path

from copyignore.config.models import AppConfig
from copyignore.observability.run_summary import RunSummary, utc_now
from copyignore.scanner.collector import (
    IgnoredFileCollector,
    relative_to_search_root,
)
from copyignore.scanner.exclusion import PatternMatcher, RootGuard
from copyignore.scanner.git_client import GitClient, IgnoreSource
from copyignore.scanner.locator import ProgressCallback, RepositoryLocator
from copyignore.scanner.orchestrator import ScanOrchestrator
from copyignore.schemas.copy_models import CopyResult
from copyignore.schemas.scan_models import DiscoveredEntry, ScanReport
from copyignore.transfer.backup import BackupManager, make_timestamp
from copyignore.transfer.channel import EntryChannel
from copyignore.transfer.engine import CopyEngine
from copyignore.transfer.progress import ProgressCallback as CopyProgressCallback

LOGGER = logging.getLogger(__name__)


class BackupRunner:
    """Facade for scan-only listings and full streaming backup runs."""

    def __init__(
        self,
        config: AppConfig,
        *,
        ignore_source: IgnoreSource | None = None,
        timestamp: str | None = None,
    ) -> None:
        self.config = config
        self.matcher = PatternMatcher.from_patterns(config.excludes)
        self.excluder = RootGuard(self.matcher, self._skip_paths())
        self.ignore_source = ignore_source or GitClient(
            config.git.timeout_seconds,
            git_executable=config.git.executable,
        )
        self.timestamp = timestamp or make_timestamp()

    def scan(
        self, on_scan_progress: ProgressCallback | None = None
    ) -> tuple[ScanReport, list[DiscoveredEntry]]:
        """Discover entries without touching the backup root."""
        entries: list[DiscoveredEntry] = []
        lock = threading.Lock()

        def sink(entry: DiscoveredEntry) -> None:
            with lock:
                entries.append(entry)

        report = self._orchestrator().scan(
            self.config.search_root, self.excluder, sink, on_scan_progress
        )
        entries.sort(key=lambda entry: entry.relative_path.as_posix())
        return report, entries

    def dry_run(
        self, on_scan_progress: ProgressCallback | None = None
    ) -> tuple[RunSummary, list[DiscoveredEntry]]:
        """Scan only; the summary carries no copy result."""
        started_at = utc_now()
        clock_start = time.monotonic()
        report, entries = self.scan(on_scan_progress)
        return self._summary(started_at, clock_start, report, None, 0), entries

    def run(
        self,
        on_scan_progress: ProgressCallback | None = None,
        on_copy_progress: CopyProgressCallback | None = None,
    ) -> RunSummary:
        """Scan and copy concurrently, then retire backups of deleted sources."""
        if self.config.dry_run:
            summary, _ = self.dry_run(on_scan_progress)
            return summary

        started_at = utc_now()
        clock_start = time.monotonic()

        assert self.config.backup_root is not None
        backup_manager = BackupManager(
            self.config.backup_root,
            self.config.history_root,
            self.timestamp,
            keep=self.config.backup_keep,
        )
        engine = CopyEngine(
            self.config.backup_root,
            excluder=self.excluder,
            backup_manager=backup_manager,
            concurrency=self.config.concurrency,
            verbose=self.config.verbose,
        )
        channel: EntryChannel[DiscoveredEntry] = EntryChannel(
            self.config.channel_capacity
        )
        outcome: dict[str, object] = {}

        def consume() -> None:
            try:
                outcome["result"] = engine.run(channel, on_copy_progress)
            except BaseException as exc:  # noqa: BLE001
                # Re-raised on the calling thread once the scan has stopped.
                outcome["error"] = exc
                channel.cancel()

        copier = threading.Thread(target=consume, name="copy-ignore-copier")
        copier.start()
        try:
            report = self._orchestrator().scan(
                self.config.search_root,
                self.excluder,
                channel.put,
                on_scan_progress,
                cancelled=channel.cancelled,
            )
        except BaseException:
            channel.cancel()
            copier.join()
            raise
        channel.close()
        copier.join()

        error = outcome.get("error")
        if isinstance(error, BaseException):
            raise error
        result = outcome["result"]
        assert isinstance(result, CopyResult)

        keep = set(engine.discovered_destinations)
        # Backups of repositories that failed to enumerate are left alone.
        for repository in report.failed_repositories:
            relative = relative_to_search_root(
                Path(repository), self.config.search_root
            )
            keep.add(self.config.backup_root / relative)
        orphans = backup_manager.cleanup_orphans(keep)
        return self._summary(started_at, clock_start, report, result, orphans)

    def _orchestrator(self) -> ScanOrchestrator:
        locator = RepositoryLocator(
            is_repository=self.ignore_source.is_repository,
            skip=self._skip_paths(),
        )
        collector = IgnoredFileCollector(self.ignore_source, self.config.search_root)
        return ScanOrchestrator(
            locator=locator,
            collector=collector,
            scan_workers=self.config.scan_workers,
        )

    def _skip_paths(self) -> list[Path]:
        # Backup and history roots inside the search root are never scanned.
        skip: list[Path] = []
        if self.config.backup_root is not None:
            skip.append(self.config.backup_root)
            skip.append(self.config.history_root)
        return skip

    def _summary(
        self,
        started_at: datetime,
        clock_start: float,
        report: ScanReport,
        result: CopyResult | None,
        orphans: int,
    ) -> RunSummary:
        config = self.config
        return RunSummary(
            timestamp=self.timestamp,
            started_at=started_at.isoformat(),
            finished_at=utc_now().isoformat(),
            duration_seconds=round(time.monotonic() - clock_start, 3),
            search_root=str(config.search_root),
            backup_root=str(config.backup_root) if config.backup_root else None,
            history_root=(
                str(config.history_root) if config.backup_root is not None else None
            ),
            dry_run=config.dry_run,
            excludes=self.matcher.patterns,
            scan=report,
            copy_result=result,
            orphans_retired=orphans,
        )
