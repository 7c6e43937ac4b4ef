"""Thread-safe copy counters and rate-limited progress forwarding."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path

from copyignore.constants import PROGRESS_INTERVAL_SECONDS
from copyignore.schemas.copy_models import CopyOutcome, CounterSnapshot
from copyignore.schemas.enums import OutcomeKind

ProgressCallback = Callable[[CounterSnapshot, Path, Path], None]


class CopyCounters:
    """Running tallies shared by every copy worker; values only grow."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._copied = 0
        self._skipped = 0
        self._errors = 0
        self._vanished = 0
        self._total = 0

    def add_total(self, count: int = 1) -> None:
        with self._lock:
            self._total += count

    def record(self, outcome: CopyOutcome) -> CounterSnapshot:
        with self._lock:
            if outcome.kind == OutcomeKind.COPIED:
                self._copied += 1
            elif outcome.kind == OutcomeKind.SKIPPED:
                self._skipped += 1
            elif outcome.kind == OutcomeKind.ERROR:
                self._errors += 1
            else:
                self._vanished += 1
            return self._snapshot()

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> CounterSnapshot:
        return CounterSnapshot(
            copied=self._copied,
            skipped=self._skipped,
            errors=self._errors,
            vanished=self._vanished,
            total=self._total,
        )


class CoalescingReporter:
    """Forward progress at most once per ``interval`` seconds.

    The latest report is held back and delivered by ``flush()`` so the final
    state is never lost.
    """

    def __init__(
        self,
        emit: ProgressCallback,
        *,
        interval: float = PROGRESS_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._emit = emit
        self._interval = interval
        self._clock = clock
        self._lock = threading.Lock()
        self._last_emit: float | None = None
        self._pending: tuple[CounterSnapshot, Path, Path] | None = None

    def __call__(
        self, snapshot: CounterSnapshot, source: Path, destination: Path
    ) -> None:
        with self._lock:
            now = self._clock()
            if self._last_emit is not None and now - self._last_emit < self._interval:
                self._pending = (snapshot, source, destination)
                return
            self._last_emit = now
            self._pending = None
            self._emit(snapshot, source, destination)

    def flush(self) -> None:
        with self._lock:
            if self._pending is None:
                return
            pending, self._pending = self._pending, None
            self._last_emit = self._clock()
            self._emit(*pending)
