"""Exclusion pattern normalization and matching tests."""

from __future__ import annotations

import pytest

from copyignore.scanner.exclusion import (
    ExclusionPattern,
    PatternMatcher,
    RootGuard,
    normalize_pattern,
)
from copyignore.schemas.enums import PatternKind


@pytest.mark.parametrize("name", ["node_modules", "vendor", ".venv", "__pycache__"])
def test_bare_name_matches_at_any_depth(name: str) -> None:
    """A bare directory name should exclude that directory anywhere."""
    matcher = PatternMatcher.from_patterns([name])
    assert matcher.excludes(f"/home/dev/proj/{name}/pkg/index.js")
    assert matcher.excludes(f"{name}/file.txt")
    assert matcher.excludes(f"/home/dev/proj/{name}")
    assert not matcher.excludes(f"/home/dev/proj/{name}-suffix/pkg/index.js")


def test_absolute_pattern_is_case_insensitive_prefix() -> None:
    """Absolute patterns should match case-folded path prefixes."""
    matcher = PatternMatcher.from_patterns(["/Data/Cache"])
    assert matcher.excludes("/data/cache/file.bin")
    assert matcher.excludes("/DATA/CACHE")
    assert not matcher.excludes("/data/other/file.bin")


def test_drive_letter_pattern_normalizes_separators() -> None:
    """Windows-style patterns should match forward-slash candidates."""
    matcher = PatternMatcher.from_patterns(["C:\\Users\\Me\\tmp"])
    assert matcher.excludes("c:/users/me/tmp/x.txt")
    assert not matcher.excludes("d:/users/me/tmp/x.txt")


def test_extension_glob_matches_anywhere() -> None:
    """Wildcard patterns without a separator should match at any depth."""
    matcher = PatternMatcher.from_patterns(["*.log"])
    assert matcher.excludes("/repo/debug.log")
    assert matcher.excludes("/repo/logs/deep/app.log")
    assert not matcher.excludes("/repo/logs/notes.txt")


def test_simple_directory_glob_forms() -> None:
    """`*/name/*` and `*/name` should behave like a bare directory name."""
    for raw in ("*/vendor/*", "*/vendor"):
        matcher = PatternMatcher.from_patterns([raw])
        assert matcher.excludes("/r/vendor/lib.php")
        assert matcher.excludes("/r/a/b/vendor")
        assert not matcher.excludes("/r/vendors/lib.php")


@pytest.mark.parametrize(
    "raw",
    ["node_modules", "*.log", "*/vendor/*", "*/name", "build/out", "src/*.py", "/abs/x"],
)
def test_normalization_is_idempotent(raw: str) -> None:
    """Normalizing a normalized pattern should not change it."""
    once = normalize_pattern(raw)
    assert normalize_pattern(once) == once


def test_pattern_kind_is_fixed_at_parse_time() -> None:
    """Parsed patterns should carry their matching form."""
    assert ExclusionPattern.parse("/abs/dir").kind == PatternKind.ABSOLUTE_PREFIX
    assert ExclusionPattern.parse("dist").kind == PatternKind.GLOB
    assert ExclusionPattern.parse("dist").normalized == "**/dist/**"


def test_invalid_patterns_are_dropped() -> None:
    """Globs that fail to compile should be skipped, not fatal."""
    matcher = PatternMatcher.from_patterns(
        ["[z-a]", "*.[z-a]", "src/[z-a]*", "a/**/[b-a]/*", "*.tmp", "  "]
    )
    assert matcher.patterns == ["**/*.tmp"]
    assert matcher.excludes("/x/a.tmp")
    assert not matcher.excludes("/x/src/z")


def test_invalid_glob_raises_value_error_on_parse() -> None:
    with pytest.raises(ValueError):
        ExclusionPattern.parse("[z-a]")


@pytest.mark.parametrize("raw", ["#tmp/*", "!keep/*"])
def test_leading_hash_and_bang_are_literal(raw: str) -> None:
    """Gitignore comment and negation markers have no meaning in user patterns."""
    matcher = PatternMatcher.from_patterns([raw])
    literal = raw[:-2]
    assert matcher.excludes(f"{literal}/x")
    assert matcher.excludes(f"/{literal}/x")
    assert not matcher.excludes(f"{literal[1:]}/x")


def test_malformed_pattern_sequence_is_rejected() -> None:
    """A bare string is not a pattern sequence."""
    with pytest.raises(TypeError):
        PatternMatcher.from_patterns("node_modules")
    with pytest.raises(TypeError):
        PatternMatcher.from_patterns(["ok", 3])  # type: ignore[list-item]


def test_empty_matcher_excludes_nothing() -> None:
    """No patterns means no exclusions."""
    matcher = PatternMatcher.from_patterns(None)
    assert not matcher.excludes("/anything/at/all")


def test_root_guard_protects_backup_tree(tmp_path) -> None:  # type: ignore[no-untyped-def]
    """Paths at or below a protected root should always be excluded."""
    backup = tmp_path / "backup"
    guard = RootGuard(PatternMatcher.from_patterns(["*.log"]), [backup])
    assert guard.excludes(backup)
    assert guard.excludes(backup / "proj" / "file.txt")
    assert not guard.excludes(tmp_path / "backup-other" / "file.txt")
    assert guard.excludes(tmp_path / "proj" / "debug.log")
