"""
Core functionality for opm.

This package contains the foundational modules that other components depend on.
"""

from .directory import (
    MANIFEST_FILE,
    LOCKFILE,
    DEFAULT_PACKAGES_DIR,
    DirectoryError,
    get_opm_home,
    get_settings_file,
    get_manifest_path,
    get_lockfile_path,
    get_packages_dir,
)

from .exceptions import (
    OpmError,
    ConfigError,
    ManifestError,
    ManifestNotFoundError,
    PackageError,
    InvalidSpecifierError,
    FetchFailedError,
    LockfileIncompleteError,
    PackageNotInstalledError,
    PackageAlreadyExistsError,
    SourceControlError,
    SearchError,
)

__all__ = [
    "MANIFEST_FILE",
    "LOCKFILE",
    "DEFAULT_PACKAGES_DIR",
    "DirectoryError",
    "get_opm_home",
    "get_settings_file",
    "get_manifest_path",
    "get_lockfile_path",
    "get_packages_dir",
    "OpmError",
    "ConfigError",
    "ManifestError",
    "ManifestNotFoundError",
    "PackageError",
    "InvalidSpecifierError",
    "FetchFailedError",
    "LockfileIncompleteError",
    "PackageNotInstalledError",
    "PackageAlreadyExistsError",
    "SourceControlError",
    "SearchError",
]
