"""Machine-readable summary of one backup run."""

from __future__ import annotations

import platform
from datetime import UTC, datetime
from pathlib import Path

import orjson
from pydantic import Field

from copyignore.constants import PACKAGE_VERSION
from copyignore.schemas.base import StrictSchemaModel
from copyignore.schemas.copy_models import CopyResult
from copyignore.schemas.scan_models import ScanReport


class RunSummary(StrictSchemaModel):
    """Everything needed to audit a run after the fact."""

    tool_version: str = PACKAGE_VERSION
    python_version: str = Field(default_factory=platform.python_version)
    timestamp: str
    started_at: str
    finished_at: str
    duration_seconds: float = Field(ge=0)
    search_root: str
    backup_root: str | None = None
    history_root: str | None = None
    dry_run: bool = False
    excludes: list[str] = Field(default_factory=list)
    scan: ScanReport
    copy_result: CopyResult | None = None
    orphans_retired: int = 0


def utc_now() -> datetime:
    return datetime.now(UTC)


def write_summary(path: Path, summary: RunSummary) -> Path:
    """Serialize ``summary`` as indented JSON at ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = orjson.dumps(
        summary.model_dump(mode="json"),
        option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS,
    )
    path.write_bytes(payload)
    return path


def read_summary(path: Path) -> RunSummary:
    return RunSummary.model_validate(orjson.loads(path.read_bytes()))
