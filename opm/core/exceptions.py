"""
Centralized exception hierarchy for opm.

This module defines all custom exceptions used across the codebase
to provide clear exception semantics for package operations.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class OpmError(Exception):
    """Base exception for all opm errors."""

    pass


class ConfigError(OpmError):
    """Raised when global settings are malformed."""

    pass


# ============================================================================
# Project File Exceptions
# ============================================================================


class ManifestError(OpmError):
    """Base exception for project manifest errors."""

    pass


class ManifestNotFoundError(ManifestError):
    """Raised when the project has no manifest file."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"No {path.name} found in {path.parent}. Run 'opm init' first.")


# ============================================================================
# Package Exceptions
# ============================================================================


class PackageError(OpmError):
    """Base exception for package operation errors."""

    pass


class InvalidSpecifierError(PackageError):
    """Raised when a package specifier matches none of the known grammars."""

    def __init__(self, specifier: str, reason: str = ""):
        self.specifier = specifier
        self.reason = reason
        msg = f"Invalid package specifier: {specifier!r}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class FetchFailedError(PackageError):
    """Raised when a working copy cannot be fetched or checked out."""

    def __init__(self, name: str, cause: Exception):
        self.name = name
        self.cause = cause
        super().__init__(f"Failed to fetch {name}: {cause}")


class LockfileIncompleteError(PackageError):
    """Raised by frozen installs when a dependency has no usable lock entry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f'Package "{name}" not found in lockfile. '
            f"Run 'opm install' without --frozen first."
        )


class PackageNotInstalledError(PackageError):
    """Raised when remove/update targets a package that is not present."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Package {name} is not installed")


class PackageAlreadyExistsError(PackageError):
    """Raised when a dependency with the same name is already declared."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Package {name} already exists")


# ============================================================================
# Source Control Exceptions
# ============================================================================


class SourceControlError(OpmError):
    """Raised when a version control command fails."""

    def __init__(self, command, stderr: str = ""):
        self.command = list(command)
        self.stderr = stderr
        msg = f"Command failed: {' '.join(self.command)}"
        if stderr:
            msg += f": {stderr}"
        super().__init__(msg)


class SearchError(OpmError):
    """Raised when the package search backend cannot be queried."""

    pass
