"""
Lock file persistence for opm.

This module records the exact revision every dependency was resolved to, so
that a later install on another machine reproduces the same source tree.

The lock file (``opm.lock``) is JSON with keys sorted by package name, which
keeps diffs stable across runs that change nothing.

Example:
    >>> from pathlib import Path
    >>> from opm.config.lockfile import LockFileManager, LockEntry
    >>>
    >>> manager = LockFileManager(Path('/path/to/project'))
    >>> lock = manager.load()
    >>> lock.set('widgets', LockEntry(
    ...     specifier='acme/widgets',
    ...     resolved='https://github.com/acme/widgets',
    ...     commit='3f1c...'))
    >>> manager.save(lock)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from opm.core.directory import get_lockfile_path
from opm.core.exceptions import OpmError
from opm.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

LOCKFILE_VERSION = 1
LOCAL_COMMIT = "local"


class LockFileError(OpmError):
    """Raised when the lock file is corrupted or has an unsupported format."""

    pass


@dataclass(frozen=True)
class LockEntry:
    """
    The pinned state of one dependency.

    Attributes:
        specifier: Specifier exactly as declared in the manifest
        resolved: Canonical origin URL or path
        commit: Exact revision, or ``"local"`` for local-path sources
    """

    specifier: str
    resolved: str
    commit: str

    @property
    def is_local(self) -> bool:
        """Whether the entry belongs to an unpinned local-path source."""
        return self.commit == LOCAL_COMMIT

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "specifier": self.specifier,
            "resolved": self.resolved,
            "commit": self.commit,
        }

    @staticmethod
    def from_dict(data: dict) -> "LockEntry":
        """Create from dictionary loaded from JSON."""
        return LockEntry(
            specifier=data["specifier"],
            resolved=data["resolved"],
            commit=data["commit"],
        )


@dataclass
class LockFile:
    """
    Complete lock file structure.

    Attributes:
        version: Lock file format version (currently 1)
        packages: Dict of package name -> LockEntry
    """

    version: int = LOCKFILE_VERSION
    packages: Dict[str, LockEntry] = field(default_factory=dict)

    def get(self, name: str) -> Optional[LockEntry]:
        """Return the entry for ``name``, or None."""
        return self.packages.get(name)

    def set(self, name: str, entry: LockEntry) -> None:
        """Insert or replace the entry for ``name``."""
        self.packages[name] = entry

    def remove(self, name: str) -> None:
        """Drop the entry for ``name``; absent names are ignored."""
        self.packages.pop(name, None)

    def copy(self) -> "LockFile":
        """Return an independent copy (entries are immutable and shared)."""
        return LockFile(version=self.version, packages=dict(self.packages))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization, sorted by name."""
        return {
            "version": self.version,
            "packages": {
                name: self.packages[name].to_dict() for name in sorted(self.packages)
            },
        }

    def dumps(self) -> str:
        """Serialize to the on-disk text form."""
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @staticmethod
    def from_dict(data: dict) -> "LockFile":
        """Create from dictionary loaded from JSON."""
        packages = {}
        for name, entry_data in data.get("packages", {}).items():
            packages[name] = LockEntry.from_dict(entry_data)

        return LockFile(
            version=data.get("version", LOCKFILE_VERSION),
            packages=packages,
        )


class LockFileManager:
    """
    Loads and saves ``opm.lock``.

    Attributes:
        project_root: Project root directory
        lock_file_path: Path to opm.lock
    """

    def __init__(self, project_root: Path):
        """
        Initialize lock file manager.

        Args:
            project_root: Project root directory
        """
        self.project_root = Path(project_root)
        self.lock_file_path = get_lockfile_path(self.project_root)

    def load(self) -> LockFile:
        """
        Load lock file from disk.

        Returns:
            Loaded lock file, or an empty one if the file does not exist yet

        Raises:
            LockFileError: If lock file is corrupted or its version is unsupported
        """
        if not self.lock_file_path.exists():
            logger.debug(f"Lock file not found, starting empty: {self.lock_file_path}")
            return LockFile()

        try:
            with open(self.lock_file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            lock = LockFile.from_dict(data)
        except (json.JSONDecodeError, TypeError, KeyError, AttributeError) as e:
            raise LockFileError(
                f"Failed to load lock file {self.lock_file_path}: {e}. "
                f"The lock file may be corrupted or in an invalid format."
            ) from e

        if lock.version != LOCKFILE_VERSION:
            raise LockFileError(
                f"Unsupported lock file version {lock.version} in "
                f"{self.lock_file_path} (expected {LOCKFILE_VERSION})"
            )

        logger.debug(f"Loaded lock file with {len(lock.packages)} packages")
        return lock

    def save(self, lock: LockFile) -> None:
        """
        Save lock file atomically.

        Args:
            lock: Lock file to save
        """
        atomic_write(self.lock_file_path, lock.dumps())
        logger.debug(f"Lock file saved: {self.lock_file_path}")

    def save_if_changed(self, lock: LockFile, original: LockFile) -> bool:
        """
        Save ``lock`` only when it differs from ``original``.

        Returns:
            True if the file was written
        """
        if lock.to_dict() == original.to_dict() and self.lock_file_path.exists():
            return False
        self.save(lock)
        return True
