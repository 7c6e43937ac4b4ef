"""CLI smoke tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from copyignore import __version__, app
from copyignore.observability import read_summary


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("COPY_IGNORE_"):
            monkeypatch.delenv(key)


def test_package_imports() -> None:
    """Ensure the package imports with expected metadata."""
    assert __version__


def test_cli_help_runs() -> None:
    """Ensure CLI wiring is operational."""
    result = CliRunner().invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "copy-ignore" in result.stdout


def test_version_command_prints_version() -> None:
    result = CliRunner().invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_backup_rejects_missing_search_root(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        app, ["backup", str(tmp_path / "missing"), str(tmp_path / "backup")]
    )
    assert result.exit_code == 1
    assert "Search root does not exist" in result.stdout
    assert not (tmp_path / "backup").exists()


def test_scan_lists_no_entries_for_empty_root(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["scan", str(tmp_path)])
    assert result.exit_code == 0
    assert "Ignored Entries (0)" in result.stdout


def test_backup_writes_summary_json(tmp_path: Path) -> None:
    search_root = tmp_path / "work"
    search_root.mkdir()
    backup_root = tmp_path / "backup"
    summary_path = tmp_path / "out" / "summary.json"

    result = CliRunner().invoke(
        app,
        [
            "backup",
            str(search_root),
            str(backup_root),
            "--exclude",
            "node_modules",
            "--summary-json",
            str(summary_path),
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert backup_root.is_dir()
    summary = read_summary(summary_path)
    assert summary.dry_run is False
    assert summary.excludes == ["**/node_modules/**"]
    assert summary.copy_result is not None
    assert summary.copy_result.total == 0


def test_validate_config_prints_effective_settings(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(
        f"search_root: {tmp_path}\nbackup_root: {tmp_path / 'backup'}\n"
        "backup_keep: 5\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(app, ["validate-config", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "Effective Configuration" in result.stdout
    assert "backup_keep" in result.stdout


def test_validate_config_fails_without_search_root(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text("dry_run: true\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["validate-config", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Configuration validation failed" in result.stdout
