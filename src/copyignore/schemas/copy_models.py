"""Copy-stage outcome contracts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field

from copyignore.schemas.base import StrictSchemaModel
from copyignore.schemas.enums import ErrorCause, OutcomeKind, SkipReason


@dataclass(frozen=True)
class CopyOutcome:
    """Result of copying one discovered entry."""

    kind: OutcomeKind
    source: Path
    destination: Path
    skip_reason: SkipReason | None = None
    cause: ErrorCause | None = None
    detail: str | None = None

    @classmethod
    def copied(cls, source: Path, destination: Path) -> "CopyOutcome":
        return cls(OutcomeKind.COPIED, source, destination)

    @classmethod
    def skipped(cls, source: Path, destination: Path) -> "CopyOutcome":
        return cls(
            OutcomeKind.SKIPPED,
            source,
            destination,
            skip_reason=SkipReason.TARGET_NOT_OLDER,
        )

    @classmethod
    def vanished(cls, source: Path, destination: Path) -> "CopyOutcome":
        return cls(OutcomeKind.VANISHED, source, destination)

    @classmethod
    def error(
        cls,
        source: Path,
        destination: Path,
        cause: ErrorCause,
        detail: str,
    ) -> "CopyOutcome":
        return cls(OutcomeKind.ERROR, source, destination, cause=cause, detail=detail)


class CounterSnapshot(StrictSchemaModel):
    """Point-in-time view of the running copy counters."""

    copied: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    vanished: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class CopyResult(StrictSchemaModel):
    """Final tally of a copy run."""

    copied: int = 0
    skipped: int = 0
    errors: int = 0
    vanished: int = 0
    total: int = 0
    error_details: list[str] = Field(default_factory=list)
