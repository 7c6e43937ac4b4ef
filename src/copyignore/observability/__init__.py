"""Observability exports."""

from copyignore.observability.logging_setup import configure_logging
from copyignore.observability.run_summary import (
    RunSummary,
    read_summary,
    write_summary,
)

__all__ = [
    "RunSummary",
    "configure_logging",
    "read_summary",
    "write_summary",
]
