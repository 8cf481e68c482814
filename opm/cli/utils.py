"""
Shared utilities for CLI commands.

Provides common functionality used across multiple CLI commands to
eliminate duplication and ensure consistent behavior.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from opm.config.settings import Settings, load_settings
from opm.packages.fetcher import short
from opm.packages.reconciler import DependencyReconciler, UpdateResult

logger = logging.getLogger(__name__)

# Commit summaries shown per package before collapsing the rest
MAX_COMMITS_SHOWN = 3


# ============================================================================
# Configuration Management
# ============================================================================


def get_settings(args) -> Settings:
    """
    Load global settings, honoring ``--config``.

    Args:
        args: Parsed arguments (``config`` may be None)

    Returns:
        Loaded settings
    """
    return load_settings(getattr(args, "config", None))


def resolve_project_root(path: Optional[Path] = None) -> Path:
    """
    Resolve project root directory.

    Args:
        path: Optional path (defaults to current directory)

    Returns:
        Resolved absolute path
    """
    if path is None:
        path = Path.cwd()
    return Path(path).resolve()


def create_reconciler(args) -> DependencyReconciler:
    """
    Build the reconciler for the project selected by ``--project-root``.

    Raises:
        ConfigError: If the settings file is invalid
    """
    project_root = resolve_project_root(getattr(args, "project_root", None))
    settings = get_settings(args)
    logger.debug(f"Project root: {project_root}")
    return DependencyReconciler(project_root, settings)


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for Windows console.

    Falls back to ASCII-safe characters if Unicode symbols can't be encoded.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        safe_message = (
            message.replace("→", "->")
            .replace("✓", "[OK]")
            .replace("✗", "[X]")
            .replace("★", "*")
        )
        print(safe_message, file=file)


def pluralize(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def format_update(result: UpdateResult) -> List[str]:
    """
    Format one update result as output lines.

    Shows the revision change, the number of commits and the first few
    commit summaries.
    """
    if result.error is not None:
        return [f"  {result.name}: failed ({result.error})"]
    if result.skipped:
        return [f"  {result.name}: skipped ({result.skipped})"]
    if not result.changed:
        return [f"  {result.name}: up to date"]
    if result.old_commit == result.new_commit:
        return [f"  {result.name}: locked at {short(result.new_commit)} (already checked out)"]

    lines = [
        f"  {result.name}: {short(result.old_commit)} → "
        f"{short(result.new_commit)} ({pluralize(len(result.commits), 'commit')})"
    ]
    for commit in result.commits[:MAX_COMMITS_SHOWN]:
        lines.append(f"    {commit}")
    if len(result.commits) > MAX_COMMITS_SHOWN:
        lines.append(f"    ... and {len(result.commits) - MAX_COMMITS_SHOWN} more")
    return lines
