"""
File system utilities for opm.

This module provides the file operations the package engine relies on:
- Directory links for local-path dependencies
- Atomic writes for the manifest and lockfile
- Guarded deletion of working copies
- Scratch directories for in-progress fetches
"""

import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from opm.core.exceptions import OpmError

IS_WINDOWS = os.name == "nt"


# ============================================================================
# Errors
# ============================================================================


class FilesystemError(OpmError):
    """Base exception for filesystem operations."""

    pass


class LinkCreationError(FilesystemError):
    """Failed to create a symbolic link."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Args:
        path: Path to check
        parent: Parent directory

    Returns:
        True if path is under parent directory

    Example:
        >>> is_relative_to(Path("/home/user/project/odin_packages/x"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def path_exists(path: Union[str, Path]) -> bool:
    """Return True if anything (including a dangling symlink) exists at path."""
    path = Path(path)
    return path.is_symlink() or path.exists()


# ============================================================================
# Link Creation
# ============================================================================


def create_link(source: Union[str, Path], target: Union[str, Path]) -> None:
    """
    Create a directory symlink at ``target`` pointing to ``source``.

    An existing link or file at ``target`` is replaced. An existing real
    directory is never deleted implicitly.

    Args:
        source: Path to the actual directory (link target)
        target: Path where the link should be created

    Raises:
        LinkCreationError: If the link cannot be created

    Example:
        >>> create_link('/src/mylib', 'odin_packages/mylib')
    """
    source = Path(source).resolve()
    target = Path(target)

    target.parent.mkdir(parents=True, exist_ok=True)

    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.is_dir():
        raise LinkCreationError(
            f"Target path exists as a directory: {target}. "
            "Please remove it manually if you want to create a link."
        )

    try:
        os.symlink(source, target, target_is_directory=True)
    except OSError as e:
        raise LinkCreationError(f"Failed to create symlink {target} -> {source}: {e}")


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)

    Example:
        >>> atomic_write('opm.lock', '{"version": 1, "packages": {}}\\n')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding, newline="\n") as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree or directory link.

    Links are unlinked, never followed, so removing a local-path dependency
    never touches the linked source tree.

    Args:
        path: Directory (or directory link) to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('odin_packages/widgets', require_prefix='odin_packages')
    """
    path = Path(path)

    if require_prefix is not None:
        prefix = Path(require_prefix).resolve()
        # Compare the link itself, not what it points to
        candidate = path.parent.resolve() / path.name
        if not is_relative_to(candidate, prefix):
            raise ValueError(
                f"Refusing to delete '{candidate}': not under required prefix '{prefix}'"
            )

    if path.is_symlink():
        try:
            path.unlink()
        except OSError as e:
            raise FilesystemError(f"Failed to remove link '{path}': {e}")
        return

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, failed_path, exc):
                """Error handler for read-only git objects on Windows."""
                if not os.access(failed_path, os.W_OK):
                    os.chmod(failed_path, 0o777)
                    func(failed_path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}")


@contextmanager
def temporary_directory(parent: Union[str, Path], prefix: str = ".opm-"):
    """
    Context manager for a scratch directory inside ``parent``.

    The directory is removed on exit unless the caller moved it away.

    Args:
        parent: Directory that will contain the scratch directory
        prefix: Prefix for the directory name

    Yields:
        Path to the scratch directory
    """
    parent = Path(parent)
    parent.mkdir(parents=True, exist_ok=True)
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))

    try:
        yield temp_dir
    finally:
        if temp_dir.exists():
            shutil.rmtree(temp_dir, ignore_errors=True)


__all__ = [
    "FilesystemError",
    "LinkCreationError",
    "is_relative_to",
    "path_exists",
    "create_link",
    "atomic_write",
    "safe_rmtree",
    "temporary_directory",
]
