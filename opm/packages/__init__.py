"""
Package engine for opm.

This package turns declared dependencies into pinned, reproducible working
copies.

Available Components:
--------------------
- parse_specifier: Parse a specifier string into a name and SourceDescriptor
- SourceControl / GitSourceControl: Version control port and git backend
- SourceFetcher: Create, inspect and remove working copies
- DependencyReconciler: add / remove / update / install / list
- search_packages: GitHub repository search

Example Usage:
-------------
    from pathlib import Path
    from opm.packages import DependencyReconciler

    reconciler = DependencyReconciler(Path('/path/to/project'))
    reconciler.add('acme/widgets@v1.0.0')
    for status in reconciler.list():
        print(status.name, status.state.value, status.commit)
"""

from opm.packages.specifier import (
    SourceKind,
    SourceDescriptor,
    ParsedSpecifier,
    parse_specifier,
)
from opm.packages.source_control import SourceControl, GitSourceControl
from opm.packages.fetcher import InstallState, SourceFetcher
from opm.packages.reconciler import (
    AddResult,
    DependencyReconciler,
    InstallAction,
    InstallOutcome,
    InstallReport,
    PackageFailure,
    PackageStatus,
    UpdateResult,
)
from opm.packages.search import SearchResult, search_packages

__all__ = [
    "SourceKind",
    "SourceDescriptor",
    "ParsedSpecifier",
    "parse_specifier",
    "SourceControl",
    "GitSourceControl",
    "InstallState",
    "SourceFetcher",
    "AddResult",
    "DependencyReconciler",
    "InstallAction",
    "InstallOutcome",
    "InstallReport",
    "PackageFailure",
    "PackageStatus",
    "UpdateResult",
    "SearchResult",
    "search_packages",
]
