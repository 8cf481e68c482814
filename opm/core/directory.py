"""
Directory layout for opm.

This module resolves the global opm home directory and the project-local
paths that the package engine reads and writes.

Directory Structure:
    Global home (~/.opm/ or $OPM_HOME):
        - config.yaml     : Global settings

    Project root:
        - opm.json        : Project manifest (declared dependencies)
        - opm.lock        : Lockfile (pinned revisions)
        - odin_packages/  : One working copy per dependency
"""

import os
from pathlib import Path, PurePath
from typing import Union

from opm.core.exceptions import OpmError

MANIFEST_FILE = "opm.json"
LOCKFILE = "opm.lock"
SETTINGS_FILE = "config.yaml"
DEFAULT_PACKAGES_DIR = "odin_packages"


class DirectoryError(OpmError):
    """Base exception for directory-related errors."""

    pass


def get_opm_home() -> Path:
    """
    Get the global opm home directory.

    ``$OPM_HOME`` takes precedence; otherwise ``~/.opm`` (``%USERPROFILE%\\.opm``
    on Windows).

    Returns:
        Path: The global home directory path.

    Example:
        >>> get_opm_home()
        PosixPath('/home/user/.opm')
    """
    override = os.environ.get("OPM_HOME")
    if override:
        return Path(override).expanduser()

    if os.name == "nt":
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine opm home directory."
            )
        return Path(user_profile) / ".opm"
    return Path.home() / ".opm"


def get_settings_file() -> Path:
    """Get the default global settings file path."""
    return get_opm_home() / SETTINGS_FILE


def get_manifest_path(project_root: Union[str, PurePath]) -> Path:
    """Get the project manifest path."""
    return Path(project_root) / MANIFEST_FILE


def get_lockfile_path(project_root: Union[str, PurePath]) -> Path:
    """Get the project lockfile path."""
    return Path(project_root) / LOCKFILE


def get_packages_dir(
    project_root: Union[str, PurePath], packages_dir: str = DEFAULT_PACKAGES_DIR
) -> Path:
    """
    Get the directory holding the project's working copies.

    Args:
        project_root: Root directory of the project.
        packages_dir: Directory name (or relative path) from settings.

    Returns:
        Path: ``<project_root>/<packages_dir>``
    """
    return Path(project_root) / packages_dir
