"""Configuration module for opm.

This module provides the global settings, the project manifest (opm.json)
and the lock file (opm.lock).
"""

from opm.config.settings import Settings, load_settings
from opm.config.manifest import DeclaredDependency, ProjectManifest
from opm.config.lockfile import (
    LOCAL_COMMIT,
    LOCKFILE_VERSION,
    LockEntry,
    LockFile,
    LockFileError,
    LockFileManager,
)

__all__ = [
    "Settings",
    "load_settings",
    "DeclaredDependency",
    "ProjectManifest",
    "LOCAL_COMMIT",
    "LOCKFILE_VERSION",
    "LockEntry",
    "LockFile",
    "LockFileError",
    "LockFileManager",
]
