"""User exclusion patterns layered on top of git's own ignore rules."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from pathspec import PathSpec

from copyignore.schemas.enums import PatternKind

LOGGER = logging.getLogger(__name__)

_WILDCARD_CHARS = ("*", "?", "[")
_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:/")


class Excluder(Protocol):
    """Capability shared by every component that filters candidate paths."""

    def excludes(self, path: str | os.PathLike[str]) -> bool:
        """Return True when ``path`` must be left out of the backup set."""


def to_forward_slashes(path: str | os.PathLike[str]) -> str:
    return os.fspath(path).replace("\\", "/")


def has_wildcard(pattern: str) -> bool:
    return any(char in pattern for char in _WILDCARD_CHARS)


def is_absolute_pattern(pattern: str) -> bool:
    """Drive-letter, UNC and POSIX-rooted patterns are matched as path prefixes."""
    normalized = to_forward_slashes(pattern)
    return bool(
        _DRIVE_PATTERN.match(normalized)
        or normalized.startswith("//")
        or normalized.startswith("/")
    )


def _simple_dir_name(pattern: str) -> str | None:
    # `*/name/*` and `*/name` both mean "this directory anywhere".
    if not pattern.startswith("*/"):
        return None
    remaining = pattern[2:]
    if remaining.endswith("/*"):
        remaining = remaining[:-2]
    if not remaining or "/" in remaining or has_wildcard(remaining):
        return None
    return remaining


def normalize_pattern(pattern: str) -> str:
    """Rewrite a user pattern into its canonical matching form.

    The rewrite is idempotent: feeding the result back in returns it unchanged.
    """
    normalized = to_forward_slashes(pattern)
    if is_absolute_pattern(normalized):
        return normalized
    if not has_wildcard(normalized):
        return f"**/{normalized.strip('/')}/**"
    dir_name = _simple_dir_name(normalized)
    if dir_name is not None:
        return f"**/{dir_name}/**"
    if "/" not in normalized:
        return f"**/{normalized}"
    return normalized


def _gitignore_line(normalized: str) -> str:
    # A leading `#` or `!` is literal here, not a comment or a negation.
    if normalized.startswith(("#", "!")):
        return "\\" + normalized
    return normalized


@dataclass(frozen=True)
class ExclusionPattern:
    """A normalized exclusion rule of fixed kind."""

    raw: str
    normalized: str
    kind: PatternKind
    _spec: PathSpec | None = field(default=None, repr=False, compare=False)

    @classmethod
    def parse(cls, raw: str) -> "ExclusionPattern":
        """Normalize ``raw``; invalid glob syntax raises ``ValueError``."""
        normalized = normalize_pattern(raw)
        if is_absolute_pattern(normalized):
            return cls(
                raw=raw, normalized=normalized, kind=PatternKind.ABSOLUTE_PREFIX
            )
        try:
            spec = PathSpec.from_lines("gitignore", [_gitignore_line(normalized)])
        except re.error as exc:
            raise ValueError(f"Invalid exclusion pattern {raw!r}: {exc}") from exc
        return cls(raw=raw, normalized=normalized, kind=PatternKind.GLOB, _spec=spec)

    def matches(self, candidate: str) -> bool:
        """Match a forward-slash normalized candidate path."""
        if self.kind == PatternKind.ABSOLUTE_PREFIX:
            return candidate.lower().startswith(self.normalized.lower())
        assert self._spec is not None
        relative = candidate.lstrip("/")
        # A trailing slash lets `**/name/**` match the directory `name` itself.
        return self._spec.match_file(relative) or self._spec.match_file(
            relative + "/"
        )


class PatternMatcher:
    """Decides whether a path falls under any user exclusion pattern."""

    def __init__(self, patterns: list[ExclusionPattern]) -> None:
        self._patterns = patterns

    @classmethod
    def from_patterns(cls, patterns: Iterable[str] | None) -> "PatternMatcher":
        if patterns is None:
            return cls([])
        if isinstance(patterns, (str, bytes)):
            raise TypeError("patterns must be a sequence of strings, not a string")
        compiled: list[ExclusionPattern] = []
        for raw in patterns:
            if not isinstance(raw, str):
                raise TypeError(f"Exclusion pattern must be a string: {raw!r}")
            if not raw.strip():
                continue
            try:
                compiled.append(ExclusionPattern.parse(raw.strip()))
            except (ValueError, re.error) as exc:
                LOGGER.debug("Dropping invalid exclusion pattern %r: %s", raw, exc)
        return cls(compiled)

    @property
    def patterns(self) -> list[str]:
        return [pattern.normalized for pattern in self._patterns]

    def __repr__(self) -> str:
        return f"PatternMatcher({self.patterns!r})"

    def excludes(self, path: str | os.PathLike[str]) -> bool:
        if not self._patterns:
            return False
        candidate = normalize_candidate(path)
        for pattern in self._patterns:
            try:
                if pattern.matches(candidate):
                    return True
            except (ValueError, re.error) as exc:
                LOGGER.debug(
                    "Pattern %s failed on %s: %s", pattern.normalized, candidate, exc
                )
        return False


def normalize_candidate(path: str | os.PathLike[str]) -> str:
    """Clean ``path`` and convert it to forward slashes."""
    text = to_forward_slashes(path)
    if not text:
        return text
    return to_forward_slashes(os.path.normpath(text))


class RootGuard:
    """Excluder that also refuses anything at or below the ``protected`` roots."""

    def __init__(self, inner: Excluder, protected: Iterable[os.PathLike[str]]) -> None:
        self._inner = inner
        self._protected = [os.path.abspath(root) for root in protected]

    def excludes(self, path: str | os.PathLike[str]) -> bool:
        candidate = os.path.abspath(path)
        for root in self._protected:
            if candidate == root or candidate.startswith(root.rstrip(os.sep) + os.sep):
                return True
        return self._inner.excludes(path)
