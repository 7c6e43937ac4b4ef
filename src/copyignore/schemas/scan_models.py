"""Scanner-stage records and contracts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePath

from pydantic import Field

from copyignore.schemas.base import StrictSchemaModel


@dataclass(frozen=True)
class DiscoveredEntry:
    """One ignored file or directory found inside a repository."""

    absolute_path: Path
    relative_path: Path
    repository_root: Path

    def __post_init__(self) -> None:
        parts = PurePath(self.relative_path).parts
        if not parts or str(self.relative_path) in ("", "."):
            raise ValueError(f"Empty relative path for {self.absolute_path}")
        if self.relative_path.is_absolute() or ".." in parts:
            raise ValueError(
                f"Relative path escapes backup root: {self.relative_path}"
            )

    def destination(self, backup_root: Path) -> Path:
        """Return the mirrored location of this entry under ``backup_root``."""
        return backup_root / self.relative_path


class ScanReport(StrictSchemaModel):
    """Statistics for one scan of the search root."""

    directories_visited: int = 0
    repositories_found: int = 0
    repositories_excluded: int = 0
    repositories_failed: int = 0
    entries_discovered: int = 0
    failed_repositories: list[str] = Field(default_factory=list)
