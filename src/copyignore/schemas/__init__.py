"""Schema contract exports."""

from copyignore.schemas.copy_models import CopyOutcome, CopyResult, CounterSnapshot
from copyignore.schemas.enums import ErrorCause, OutcomeKind, PatternKind, SkipReason
from copyignore.schemas.scan_models import DiscoveredEntry, ScanReport

__all__ = [
    "CopyOutcome",
    "CopyResult",
    "CounterSnapshot",
    "DiscoveredEntry",
    "ErrorCause",
    "OutcomeKind",
    "PatternKind",
    "ScanReport",
    "SkipReason",
]
