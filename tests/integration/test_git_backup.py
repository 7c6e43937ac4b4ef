"""Backups of real git repositories."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from copyignore.config.models import AppConfig
from copyignore.runner import BackupRunner
from copyignore.scanner.git_client import GitClient

pytestmark = [
    pytest.mark.git,
    pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed"),
]


@pytest.fixture
def repository(tmp_path: Path) -> Path:
    repo = tmp_path / "work" / "app"
    repo.mkdir(parents=True)
    subprocess.run(["git", "init", "-q", str(repo)], check=True)
    (repo / ".gitignore").write_text("/build\n*.log\n", encoding="utf-8")
    (repo / "main.py").write_text("print('hi')\n", encoding="utf-8")
    (repo / "debug.log").write_text("log\n", encoding="utf-8")
    (repo / "build").mkdir()
    (repo / "build" / "a.o").write_text("a", encoding="utf-8")
    (repo / "build" / "b.o").write_text("b", encoding="utf-8")
    return repo


def test_git_client_lists_and_probes_ignored_paths(repository: Path) -> None:
    client = GitClient()

    assert client.is_repository(repository)
    listed = sorted(client.list_ignored(repository))
    assert listed == ["build/a.o", "build/b.o", "debug.log"]
    assert client.is_ignored(repository, repository / "build")
    assert not client.is_ignored(repository, repository / "main.py")


def test_backup_run_mirrors_ignored_files(repository: Path, tmp_path: Path) -> None:
    backup_root = tmp_path / "backup"
    config = AppConfig.model_validate(
        {
            "search_root": tmp_path / "work",
            "backup_root": backup_root,
            "concurrency": 2,
        }
    )

    summary = BackupRunner(config, timestamp="20240101-000000").run()

    assert summary.scan.repositories_found == 1
    assert summary.copy_result is not None
    assert summary.copy_result.errors == 0
    assert summary.copy_result.copied == 2
    assert (backup_root / "app" / "debug.log").read_text(encoding="utf-8") == "log\n"
    assert (backup_root / "app" / "build" / "b.o").exists()
    assert not (backup_root / "app" / "main.py").exists()
    assert not (backup_root / "app" / ".gitignore").exists()
