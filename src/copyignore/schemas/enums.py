"""Enum definitions for canonical contracts."""

from __future__ import annotations

from enum import Enum


class PatternKind(str, Enum):
    ABSOLUTE_PREFIX = "absolute_prefix"
    GLOB = "glob"


class OutcomeKind(str, Enum):
    COPIED = "copied"
    SKIPPED = "skipped"
    ERROR = "error"
    VANISHED = "vanished"


class SkipReason(str, Enum):
    TARGET_NOT_OLDER = "target-not-older"


class ErrorCause(str, Enum):
    SOURCE_STAT_FAILURE = "source-stat-failure"
    DESTINATION_STAT_FAILURE = "destination-stat-failure"
    COPY_IO_FAILURE = "copy-io-failure"
    RENAME_FAILURE = "rename-failure"
    BACKUP_FAILURE = "backup-failure"
