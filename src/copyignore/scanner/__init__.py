"""Repository discovery and ignored-path collection."""

from copyignore.scanner.collector import IgnoredFileCollector, collapse_redundant
from copyignore.scanner.exclusion import (
    Excluder,
    ExclusionPattern,
    PatternMatcher,
    RootGuard,
)
from copyignore.scanner.git_client import GitClient, IgnoreSource, has_repository_marker
from copyignore.scanner.locator import RepositoryLocator
from copyignore.scanner.orchestrator import ScanOrchestrator

__all__ = [
    "Excluder",
    "ExclusionPattern",
    "GitClient",
    "IgnoreSource",
    "IgnoredFileCollector",
    "PatternMatcher",
    "RepositoryLocator",
    "RootGuard",
    "ScanOrchestrator",
    "collapse_redundant",
    "has_repository_marker",
]
