"""Configuration loading, override resolution and filesystem validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from copyignore.config.models import AppConfig
from copyignore.errors import ConfigInvalid

ENV_PREFIX = "COPY_IGNORE_"
_ENV_FIELDS = {
    "SEARCH_ROOT": "search_root",
    "BACKUP_ROOT": "backup_root",
    "EXCLUDES": "excludes",
    "CONCURRENCY": "concurrency",
    "SCAN_WORKERS": "scan_workers",
    "BACKUP_KEEP": "backup_keep",
    "HISTORY_SUBDIR": "history_subdir",
    "HISTORY_DIR": "history_dir",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigInvalid(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigInvalid(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigInvalid("Configuration file must deserialize to a mapping")
    return data


def apply_overrides(
    raw_config: dict[str, Any],
    env: Mapping[str, str],
    cli_overrides: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Apply precedence: CLI > env > YAML defaults."""
    merged = dict(raw_config)
    for suffix, field_name in _ENV_FIELDS.items():
        value = env.get(f"{ENV_PREFIX}{suffix}")
        if value:
            merged[field_name] = value
    for flag in ("DRY_RUN", "VERBOSE"):
        value = env.get(f"{ENV_PREFIX}{flag}")
        if value:
            merged[flag.lower()] = value.strip().lower() in _TRUE_VALUES
    git_timeout = env.get(f"{ENV_PREFIX}GIT_TIMEOUT_SECONDS")
    if git_timeout:
        merged["git"] = {**(merged.get("git") or {}), "timeout_seconds": git_timeout}

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is None:
                continue
            if key == "excludes":
                # Repeated --exclude flags extend the configured list.
                merged["excludes"] = [*(merged.get("excludes") or []), *value]
                continue
            merged[key] = value
    return merged


def load_app_config(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load and validate run configuration."""
    active_env = os.environ if env is None else env
    raw = _load_yaml(config_path) if config_path is not None else {}
    merged = apply_overrides(raw, active_env, cli_overrides)
    try:
        return AppConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigInvalid(str(exc)) from exc


def prepare_filesystem(config: AppConfig) -> AppConfig:
    """Check the search root and create the backup root when it is missing."""
    search_root = config.search_root.expanduser()
    if not search_root.exists():
        raise ConfigInvalid(f"Search root does not exist: {search_root}")
    if not search_root.is_dir():
        raise ConfigInvalid(f"Search root is not a directory: {search_root}")

    updates: dict[str, Any] = {"search_root": search_root.resolve()}
    if config.backup_root is not None:
        backup_root = config.backup_root.expanduser()
        if backup_root.exists() and not backup_root.is_dir():
            raise ConfigInvalid(f"Backup root is not a directory: {backup_root}")
        if not config.dry_run:
            try:
                backup_root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigInvalid(
                    f"Failed to create backup root {backup_root}: {exc}"
                ) from exc
        updates["backup_root"] = backup_root.resolve()
    if config.history_dir is not None:
        updates["history_dir"] = config.history_dir.expanduser().resolve()
    return config.model_copy(update=updates)
