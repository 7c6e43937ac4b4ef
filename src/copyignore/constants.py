"""Package-wide constants."""

from __future__ import annotations

PACKAGE_VERSION = "0.4.0"

GIT_MARKER = ".git"
GITDIR_PREFIX = "gitdir:"

DEFAULT_CONCURRENCY = 8
DEFAULT_BACKUP_KEEP = 3
DEFAULT_HISTORY_SUBDIR = "copy-ignore-history"
DEFAULT_CHANNEL_CAPACITY = 10_000
DEFAULT_GIT_TIMEOUT_SECONDS = 300

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
TIMESTAMP_PATTERN = r"^\d{8}-\d{6}$"
TEMP_SUFFIX = ".copy-ignore.tmp"

PROGRESS_INTERVAL_SECONDS = 0.5
