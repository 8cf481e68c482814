"""
Working copy materialization.

The SourceFetcher turns a SourceDescriptor into a directory under the
project's packages directory, in one of three modes:

- pin-exact: clone without a working tree, then check out a known revision
- ref-acquire: shallow clone a branch/tag (or the default branch) and report
  the revision it resolved to
- local-link: symlink the dependency directory to a local source tree

Remote clones are built in a scratch directory next to the final location
and renamed into place only after every step succeeded. A directory under a
package's name is therefore either a complete working copy or something the
fetcher did not create, never a half-finished clone.

The fetcher never reads or writes the lock file; callers decide what to
persist.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from opm.core.exceptions import FetchFailedError, SourceControlError
from opm.core.filesystem import (
    FilesystemError,
    create_link,
    path_exists,
    safe_rmtree,
    temporary_directory,
)
from opm.packages.source_control import SourceControl
from opm.packages.specifier import SourceDescriptor

logger = logging.getLogger(__name__)


class InstallState(Enum):
    """Materialization state of one dependency."""

    NOT_INSTALLED = "not-installed"
    INSTALLED = "installed"
    CORRUPT = "corrupt"


class SourceFetcher:
    """
    Creates, inspects and removes working copies.

    Attributes:
        project_root: Project root (base for relative local paths)
        packages_dir: Directory holding one working copy per package
        source_control: VCS implementation used for remote sources
    """

    def __init__(
        self, project_root: Path, packages_dir: Path, source_control: SourceControl
    ):
        self.project_root = Path(project_root)
        self.packages_dir = Path(packages_dir)
        self.source_control = source_control

    def working_copy(self, name: str) -> Path:
        """Directory of the working copy for ``name``."""
        return self.packages_dir / name

    def collection_path(self, name: str) -> str:
        """Working copy path as recorded in the manifest's collections."""
        path = self.working_copy(name)
        try:
            return path.relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()

    def resolve_local(self, source: SourceDescriptor) -> Path:
        """Absolute path of a local source (relative paths are project-relative)."""
        path = Path(source.origin).expanduser()
        if not path.is_absolute():
            path = self.project_root / path
        return path.resolve()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def inspect(self, name: str, source: SourceDescriptor) -> InstallState:
        """
        Determine the install state of ``name`` for the declared ``source``.

        A working copy whose shape does not match the declared source (a
        link where a clone is expected, a dangling link, a directory git
        cannot read) is reported as CORRUPT.
        """
        path = self.working_copy(name)
        if not path_exists(path):
            return InstallState.NOT_INSTALLED

        if source.is_local:
            if (
                path.is_symlink()
                and path.exists()
                and path.resolve() == self.resolve_local(source)
            ):
                return InstallState.INSTALLED
            return InstallState.CORRUPT

        if path.is_symlink() or not path.is_dir():
            return InstallState.CORRUPT
        if self.source_control.is_repository(path):
            return InstallState.INSTALLED
        return InstallState.CORRUPT

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def pin_exact(self, name: str, source: SourceDescriptor, commit: str) -> Path:
        """
        Materialize ``name`` at exactly ``commit``.

        Raises:
            FetchFailedError: If cloning or checkout fails
        """
        dest = self.working_copy(name)
        logger.debug(f"Cloning {source.origin} at {commit} into {dest}")
        try:
            with temporary_directory(self.packages_dir) as scratch:
                clone_dir = scratch / name
                self.source_control.clone_bare(source.origin, clone_dir)
                self.source_control.checkout(clone_dir, commit)
                self._move_into_place(clone_dir, dest)
        except (SourceControlError, FilesystemError, OSError) as e:
            raise FetchFailedError(name, e) from e
        return dest

    def ref_acquire(self, name: str, source: SourceDescriptor) -> Tuple[Path, str]:
        """
        Materialize the tip of the source's branch/tag (default branch if none).

        Returns:
            Working copy path and the revision it resolved to

        Raises:
            FetchFailedError: If cloning fails
        """
        dest = self.working_copy(name)
        ref = source.revision_hint
        logger.debug(f"Cloning {source.origin} ({ref or 'default branch'}) into {dest}")
        try:
            with temporary_directory(self.packages_dir) as scratch:
                clone_dir = scratch / name
                self.source_control.clone_shallow(source.origin, clone_dir, ref=ref)
                commit = self.source_control.current_revision(clone_dir)
                self._move_into_place(clone_dir, dest)
        except (SourceControlError, FilesystemError, OSError) as e:
            raise FetchFailedError(name, e) from e
        return dest, commit

    def link_local(self, name: str, source: SourceDescriptor) -> Path:
        """
        Link ``name`` to a local source directory.

        Raises:
            FetchFailedError: If the source does not exist or linking fails
        """
        dest = self.working_copy(name)
        target = self.resolve_local(source)
        if not target.is_dir():
            raise FetchFailedError(
                name, FileNotFoundError(f"Local package path does not exist: {target}")
            )
        try:
            if path_exists(dest):
                safe_rmtree(dest, require_prefix=self.packages_dir)
            create_link(target, dest)
        except (FilesystemError, OSError) as e:
            raise FetchFailedError(name, e) from e
        logger.debug(f"Linked {dest} -> {target}")
        return dest

    def repin(self, name: str, commit: str) -> None:
        """
        Force the existing working copy of ``name`` back to ``commit``.

        The revision is fetched first when it is not present locally.

        Raises:
            FetchFailedError: If the revision cannot be fetched or checked out
        """
        path = self.working_copy(name)
        try:
            try:
                self.source_control.checkout(path, commit, force=True)
                return
            except SourceControlError:
                logger.debug(f"{commit} not available locally in {name}, fetching")
            self.source_control.fetch(path, commit)
            self.source_control.checkout(path, commit, force=True)
        except SourceControlError as e:
            raise FetchFailedError(name, e) from e

    # ------------------------------------------------------------------
    # Update support
    # ------------------------------------------------------------------

    def revision(self, name: str) -> str:
        """Revision currently checked out for ``name``."""
        try:
            return self.source_control.current_revision(self.working_copy(name))
        except SourceControlError as e:
            raise FetchFailedError(name, e) from e

    def fetch_tip(self, name: str, source: SourceDescriptor) -> str:
        """Fetch the current tip of the source's ref without touching the working tree."""
        try:
            return self.source_control.fetch(
                self.working_copy(name), source.revision_hint
            )
        except SourceControlError as e:
            raise FetchFailedError(name, e) from e

    def pending_commits(self, name: str, old: str, new: str) -> List[str]:
        """Commit summaries between ``old`` and ``new``."""
        try:
            return self.source_control.commits_between(self.working_copy(name), old, new)
        except SourceControlError as e:
            raise FetchFailedError(name, e) from e

    def fast_forward(self, name: str, revision: str) -> None:
        """Fast-forward the working copy of ``name`` to ``revision``."""
        try:
            self.source_control.fast_forward(self.working_copy(name), revision)
        except SourceControlError as e:
            raise FetchFailedError(name, e) from e

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove(self, name: str) -> bool:
        """
        Delete the working copy (or link) of ``name``.

        Returns:
            True if something was removed
        """
        path = self.working_copy(name)
        if not path_exists(path):
            return False
        safe_rmtree(path, require_prefix=self.packages_dir)
        logger.debug(f"Removed working copy {path}")
        return True

    def _move_into_place(self, src: Path, dest: Path) -> None:
        if path_exists(dest):
            safe_rmtree(dest, require_prefix=self.packages_dir)
        src.rename(dest)


def short(revision: Optional[str], length: int = 8) -> str:
    """Abbreviate a revision for display."""
    if not revision:
        return "-"
    return revision[:length]
