"""Thin wrapper around the git executable for ignored-path queries."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from copyignore.constants import DEFAULT_GIT_TIMEOUT_SECONDS, GIT_MARKER, GITDIR_PREFIX
from copyignore.errors import GitCommandError

LOGGER = logging.getLogger(__name__)


class IgnoreSource(Protocol):
    """Black-box answers about repositories; every call may be slow."""

    def is_repository(self, directory: Path) -> bool:
        """Return True when ``directory`` is the top of a working tree."""

    def list_ignored(self, repository_root: Path) -> list[str]:
        """Return repository-relative paths of ignored, untracked files."""

    def is_ignored(self, repository_root: Path, path: Path) -> bool:
        """Return True when the single ``path`` is ignored by git."""


def has_repository_marker(directory: Path) -> bool:
    """Check for a `.git` directory or a `.git` file pointing at one."""
    marker = directory / GIT_MARKER
    try:
        if marker.is_dir():
            return True
        if not marker.is_file():
            return False
        line = marker.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return False
    if not line.startswith(GITDIR_PREFIX):
        return False
    target = Path(line[len(GITDIR_PREFIX) :].strip())
    if not target.is_absolute():
        target = directory / target
    return target.exists()


class GitClient:
    """Runs git plumbing commands with deterministic output handling."""

    def __init__(
        self,
        timeout_seconds: int = DEFAULT_GIT_TIMEOUT_SECONDS,
        *,
        git_executable: str = "git",
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.git_executable = git_executable

    def is_repository(self, directory: Path) -> bool:
        return has_repository_marker(directory)

    def list_ignored(self, repository_root: Path) -> list[str]:
        result = self._run(
            repository_root,
            ["ls-files", "-i", "--exclude-standard", "-o", "-z"],
        )
        if result.returncode != 0:
            raise GitCommandError(
                f"git ls-files failed in {repository_root}: "
                f"{result.stderr.strip() or 'no error output'}",
                exit_code=result.returncode,
                stderr=result.stderr.strip() or None,
            )
        return parse_nul_separated(result.stdout)

    def is_ignored(self, repository_root: Path, path: Path) -> bool:
        try:
            relative = path.relative_to(repository_root)
        except ValueError:
            relative = path
        result = self._run(
            repository_root,
            ["check-ignore", "-q", "--", relative.as_posix()],
        )
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(
            f"git check-ignore failed for {path}: "
            f"{result.stderr.strip() or 'no error output'}",
            exit_code=result.returncode,
            stderr=result.stderr.strip() or None,
        )

    def _run(
        self, repository_root: Path, args: list[str]
    ) -> subprocess.CompletedProcess[str]:
        if shutil.which(self.git_executable) is None:
            raise GitCommandError(f"{self.git_executable} not found")
        cmd = [self.git_executable, "-C", str(repository_root), *args]
        LOGGER.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="surrogateescape",
                check=False,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise GitCommandError(
                f"git {args[0]} timed out after {self.timeout_seconds}s "
                f"in {repository_root}"
            ) from exc


def parse_nul_separated(stdout: str) -> list[str]:
    """Split `-z` output and drop empty, `.` and `..` entries."""
    paths: list[str] = []
    for part in stdout.split("\0"):
        if not part:
            continue
        cleaned = os.path.normpath(part)
        if cleaned in ("", ".", "..") or cleaned.startswith(".." + os.sep):
            continue
        paths.append(cleaned)
    return paths
