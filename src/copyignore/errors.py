"""Error taxonomy for scanning, copying and versioning."""

from __future__ import annotations

from pathlib import Path


class CopyIgnoreError(Exception):
    """Base class for all copy-ignore failures."""


class ConfigInvalid(CopyIgnoreError, ValueError):
    """Raised when run configuration fails validation before any work starts."""


class GitCommandError(CopyIgnoreError):
    """Raised when the git executable fails, times out or is missing."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class RepositoryEnumerationFailed(CopyIgnoreError):
    """Raised when the ignored paths of one repository cannot be listed."""

    def __init__(self, repository_root: Path, cause: Exception) -> None:
        super().__init__(f"Failed to enumerate {repository_root}: {cause}")
        self.repository_root = repository_root
        self.cause = cause


class TraversalFailed(CopyIgnoreError):
    """Raised when directory listing fails with anything but permission denied."""

    def __init__(self, directory: Path, cause: OSError) -> None:
        super().__init__(f"Failed to list {directory}: {cause}")
        self.directory = directory
        self.cause = cause


class CopySetupFailed(CopyIgnoreError):
    """Raised when the copy stage cannot be prepared (e.g. destination root)."""


class BackupFailed(CopyIgnoreError):
    """Raised when an existing destination could not be moved into history."""

    def __init__(self, path: Path, cause: Exception) -> None:
        super().__init__(f"Failed to version {path}: {cause}")
        self.path = path
        self.cause = cause


class ChannelClosed(CopyIgnoreError):
    """Raised when a producer writes to a closed or cancelled entry channel."""
