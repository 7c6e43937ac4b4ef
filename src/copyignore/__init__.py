"""copy-ignore package entrypoints."""

from copyignore.cli import app
from copyignore.constants import PACKAGE_VERSION
from copyignore.runtime_env import load_runtime_env

__all__ = ["app", "main", "__version__"]
__version__ = PACKAGE_VERSION


def main() -> None:
    """Launch the CLI."""
    load_runtime_env()
    app()
