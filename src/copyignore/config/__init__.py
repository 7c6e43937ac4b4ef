"""Configuration exports."""

from copyignore.config.loader import load_app_config, prepare_filesystem
from copyignore.config.models import AppConfig, GitConfig

__all__ = [
    "AppConfig",
    "GitConfig",
    "load_app_config",
    "prepare_filesystem",
]
