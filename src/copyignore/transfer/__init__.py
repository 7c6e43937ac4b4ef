"""Copy stage: entry channel, copy engine, history and progress."""

from copyignore.transfer.backup import BackupManager, make_timestamp
from copyignore.transfer.channel import EntryChannel
from copyignore.transfer.engine import CopyEngine
from copyignore.transfer.progress import CoalescingReporter, CopyCounters

__all__ = [
    "BackupManager",
    "CoalescingReporter",
    "CopyCounters",
    "CopyEngine",
    "EntryChannel",
    "make_timestamp",
]
