"""Pydantic models for run configuration."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, field_validator, model_validator

from copyignore.constants import (
    DEFAULT_BACKUP_KEEP,
    DEFAULT_CHANNEL_CAPACITY,
    DEFAULT_CONCURRENCY,
    DEFAULT_GIT_TIMEOUT_SECONDS,
    DEFAULT_HISTORY_SUBDIR,
)
from copyignore.schemas.base import StrictSchemaModel


def _default_scan_workers() -> int:
    return os.cpu_count() or 1


class GitConfig(StrictSchemaModel):
    """Controls for the git executable used to list ignored paths."""

    executable: str = Field(default="git", min_length=1)
    timeout_seconds: int = Field(default=DEFAULT_GIT_TIMEOUT_SECONDS, gt=0)


class AppConfig(StrictSchemaModel):
    """Complete configuration for one scan/copy run."""

    search_root: Path
    backup_root: Path | None = None
    excludes: list[str] = Field(default_factory=list)
    dry_run: bool = False
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    scan_workers: int = Field(default_factory=_default_scan_workers, ge=1)
    verbose: bool = False
    backup_keep: int = Field(default=DEFAULT_BACKUP_KEEP, ge=1)
    history_subdir: str = Field(default=DEFAULT_HISTORY_SUBDIR, min_length=1)
    history_dir: Path | None = None
    channel_capacity: int = Field(default=DEFAULT_CHANNEL_CAPACITY, ge=1)
    git: GitConfig = Field(default_factory=GitConfig)

    @field_validator("excludes", mode="before")
    @classmethod
    def split_excludes(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("history_subdir")
    @classmethod
    def validate_history_subdir(cls, value: str) -> str:
        if Path(value).is_absolute() or ".." in Path(value).parts:
            raise ValueError("history_subdir must be relative to backup_root")
        return value

    @model_validator(mode="after")
    def validate_backup_root(self) -> "AppConfig":
        if not self.dry_run and self.backup_root is None:
            raise ValueError("backup_root is required unless dry_run is enabled")
        return self

    @property
    def history_root(self) -> Path:
        """Directory holding one timestamped subtree per run."""
        if self.history_dir is not None:
            return self.history_dir
        assert self.backup_root is not None
        return self.backup_root / self.history_subdir
