"""Concurrent scan stage: locate repositories and stream their ignored paths."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait
from pathlib import Path

from copyignore.errors import (
    ChannelClosed,
    RepositoryEnumerationFailed,
    TraversalFailed,
)
from copyignore.scanner.collector import IgnoredFileCollector
from copyignore.scanner.exclusion import Excluder
from copyignore.scanner.locator import ProgressCallback, RepositoryLocator
from copyignore.schemas.scan_models import DiscoveredEntry, ScanReport

LOGGER = logging.getLogger(__name__)

EntrySink = Callable[[DiscoveredEntry], None]


class ScanOrchestrator:
    """Walks the search root and fans repositories out to collector workers."""

    def __init__(
        self,
        *,
        locator: RepositoryLocator,
        collector: IgnoredFileCollector,
        scan_workers: int = 1,
    ) -> None:
        if scan_workers < 1:
            raise ValueError("scan_workers must be >= 1")
        self.locator = locator
        self.collector = collector
        self.scan_workers = scan_workers

    def scan(
        self,
        search_root: Path,
        excluder: Excluder,
        sink: EntrySink,
        progress: ProgressCallback | None = None,
        *,
        cancelled: threading.Event | None = None,
    ) -> ScanReport:
        """Stream every discovered entry into ``sink`` and return statistics.

        The traversal runs on the calling thread. Repository failures are
        logged and counted; a traversal failure cancels outstanding work and
        propagates.
        """
        cancelled = cancelled or threading.Event()
        report = ScanReport()
        lock = threading.Lock()
        visited_before = self.locator.directories_visited

        def collect(repository_root: Path) -> None:
            for entry in self.collector.iter_entries(repository_root, excluder):
                if cancelled.is_set():
                    raise ChannelClosed("scan cancelled")
                sink(entry)
                with lock:
                    report.entries_discovered += 1
                LOGGER.debug("Discovered %s", entry.relative_path)

        futures: dict[Future[None], Path] = {}
        with ThreadPoolExecutor(
            max_workers=self.scan_workers, thread_name_prefix="copy-ignore-scan"
        ) as pool:
            try:
                for repository_root in self.locator.iter_repositories(
                    search_root, progress
                ):
                    if cancelled.is_set():
                        break
                    if excluder.excludes(repository_root):
                        LOGGER.debug("Excluded repository %s", repository_root)
                        report.repositories_excluded += 1
                        continue
                    report.repositories_found += 1
                    LOGGER.debug("Found repository %s", repository_root)
                    futures[pool.submit(collect, repository_root)] = repository_root
            except TraversalFailed:
                cancelled.set()
                for future in futures:
                    future.cancel()
                wait(futures)
                raise

            for future in as_completed(futures):
                repository_root = futures[future]
                try:
                    future.result()
                except RepositoryEnumerationFailed as exc:
                    LOGGER.warning("%s", exc)
                    report.repositories_failed += 1
                    report.failed_repositories.append(str(repository_root))
                except ChannelClosed:
                    LOGGER.debug("Stopped collecting %s", repository_root)

        report.directories_visited = (
            self.locator.directories_visited - visited_before
        )
        return report
