"""
Dependency reconciliation.

The DependencyReconciler brings three views of a project into agreement:

- the manifest (``opm.json``), which declares what the user wants
- the lock file (``opm.lock``), which records the exact revision of each package
- the working copies under the packages directory

Every package operation (add, remove, update, install, list) goes through it.
Lock entries are written only after the matching fetch fully succeeded, and
the manifest and lock file are rewritten only when their content changed.

Example:
    from pathlib import Path
    from opm.config.settings import load_settings
    from opm.packages.reconciler import DependencyReconciler

    reconciler = DependencyReconciler(Path.cwd(), load_settings())
    report = reconciler.install(frozen=True)
    for failure in report.failures:
        print(failure.name, failure.error)
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional

from opm.config.lockfile import LOCAL_COMMIT, LockEntry, LockFile, LockFileManager
from opm.config.manifest import DeclaredDependency, ProjectManifest
from opm.config.settings import Settings
from opm.core.directory import get_packages_dir
from opm.core.exceptions import (
    InvalidSpecifierError,
    LockfileIncompleteError,
    PackageError,
    PackageNotInstalledError,
)
from opm.core.filesystem import FilesystemError, atomic_write, path_exists
from opm.packages.fetcher import InstallState, SourceFetcher, short
from opm.packages.source_control import GitSourceControl, SourceControl
from opm.packages.specifier import ParsedSpecifier, SourceDescriptor, parse_specifier

logger = logging.getLogger(__name__)


# =============================================================================
# Results
# =============================================================================


class InstallAction(Enum):
    """What install did for one dependency."""

    FETCHED = "fetched"
    LINKED = "linked"
    REPINNED = "repinned"
    ADOPTED = "adopted"
    UP_TO_DATE = "up-to-date"


@dataclass
class PackageFailure:
    """A dependency that could not be processed in a batch operation."""

    name: str
    error: Exception


@dataclass
class InstallOutcome:
    name: str
    action: InstallAction
    commit: str


@dataclass
class InstallReport:
    """Result of ``install``."""

    outcomes: List[InstallOutcome] = field(default_factory=list)
    failures: List[PackageFailure] = field(default_factory=list)
    lockfile_written: bool = False
    manifest_written: bool = False

    @property
    def success(self) -> bool:
        return not self.failures


@dataclass
class UpdateResult:
    """
    Result of updating (or checking) one dependency.

    Attributes:
        name: Package name
        old_commit: Revision before the update
        new_commit: Revision of the fetched tip
        commits: One-line summaries of the commits between the two
        skipped: Reason the package was not considered, if any
        error: Failure raised while processing the package, if any
        lock_changed: The lock entry differs (or would differ) from the fetched tip
    """

    name: str
    old_commit: Optional[str] = None
    new_commit: Optional[str] = None
    commits: List[str] = field(default_factory=list)
    skipped: Optional[str] = None
    error: Optional[Exception] = None
    lock_changed: bool = False

    @property
    def changed(self) -> bool:
        return (
            self.error is None
            and self.skipped is None
            and (self.old_commit != self.new_commit or self.lock_changed)
        )


@dataclass
class AddResult:
    """Result of ``add``."""

    name: str
    specifier: str
    dev: bool
    commit: Optional[str]
    collection: str
    update: Optional[UpdateResult] = None


@dataclass
class PackageStatus:
    """One row of ``list``."""

    name: str
    specifier: str
    dev: bool
    state: InstallState
    commit: Optional[str] = None
    error: Optional[str] = None


# =============================================================================
# Reconciler
# =============================================================================


class DependencyReconciler:
    """
    Entry point for all package operations of one project.

    Attributes:
        project_root: Directory containing opm.json
        settings: Global settings
        source_control: VCS implementation (git subprocess by default)
        fetcher: Working copy manager
        lock_manager: opm.lock persistence
    """

    def __init__(
        self,
        project_root: Path,
        settings: Optional[Settings] = None,
        source_control: Optional[SourceControl] = None,
    ):
        self.project_root = Path(project_root)
        self.settings = settings or Settings()
        self.source_control = source_control or GitSourceControl(
            self.settings.git_executable
        )
        self.packages_dir = get_packages_dir(
            self.project_root, self.settings.packages_dir
        )
        self.fetcher = SourceFetcher(
            self.project_root, self.packages_dir, self.source_control
        )
        self.lock_manager = LockFileManager(self.project_root)

    def _parse(self, specifier: str) -> ParsedSpecifier:
        return parse_specifier(specifier, github_url=self.settings.github_url)

    def _entry_matches(self, entry: LockEntry, source: SourceDescriptor) -> bool:
        """Whether a lock entry was produced from the same source."""
        try:
            return self._parse(entry.specifier).source == source
        except InvalidSpecifierError:
            return False

    def _is_installed(self, dep: DeclaredDependency) -> bool:
        try:
            source = self._parse(dep.specifier).source
        except InvalidSpecifierError:
            return False
        return self.fetcher.inspect(dep.name, source) is InstallState.INSTALLED

    # -------------------------------------------------------------------------
    # install
    # -------------------------------------------------------------------------

    def install(self, frozen: bool = False) -> InstallReport:
        """
        Materialize every declared dependency.

        Args:
            frozen: Refuse to resolve anything that is not already locked, and
                force drifted remote working copies back to the locked revision

        Returns:
            InstallReport with per-package outcomes and failures

        Raises:
            ManifestNotFoundError: If the project has no manifest
            LockfileIncompleteError: If ``frozen`` and a dependency has no
                matching lock entry (raised before anything is fetched)
        """
        manifest = ProjectManifest.load(self.project_root)
        lock = self.lock_manager.load()
        original = lock.copy()
        declared = manifest.declared()

        if frozen:
            self._check_frozen(declared, lock)

        report = InstallReport()
        if declared:
            logger.info(
                f"Installing {len(declared)} package{'s' if len(declared) != 1 else ''}"
            )
        else:
            logger.info("No dependencies to install")

        for dep in declared:
            try:
                source = self._parse(dep.specifier).source
                outcome = self._install_one(dep, source, lock, frozen)
            except (PackageError, FilesystemError) as e:
                logger.error(f"Failed to install {dep.name}: {e}")
                report.failures.append(PackageFailure(dep.name, e))
                continue
            manifest.set_collection(dep.name, self.fetcher.collection_path(dep.name))
            report.outcomes.append(outcome)

        if not frozen:
            declared_names = {dep.name for dep in declared}
            for name in sorted(set(lock.packages) - declared_names):
                logger.info(f"Dropping lock entry for undeclared package {name}")
                lock.remove(name)

        report.lockfile_written = self.lock_manager.save_if_changed(lock, original)
        report.manifest_written = manifest.save_if_modified()
        return report

    def _check_frozen(self, declared: List[DeclaredDependency], lock: LockFile) -> None:
        for dep in declared:
            entry = lock.get(dep.name)
            if entry is None or entry.specifier != dep.specifier:
                raise LockfileIncompleteError(dep.name)
            source = self._parse(dep.specifier).source
            if not source.is_local and entry.is_local:
                raise LockfileIncompleteError(dep.name)

    def _install_one(
        self,
        dep: DeclaredDependency,
        source: SourceDescriptor,
        lock: LockFile,
        frozen: bool,
    ) -> InstallOutcome:
        name = dep.name
        entry = lock.get(name)
        state = self.fetcher.inspect(name, source)

        if entry is not None and entry.specifier != dep.specifier:
            if self._entry_matches(entry, source):
                entry = replace(entry, specifier=dep.specifier)
            else:
                logger.info(f"Source of {name} changed, resolving again")
                entry = None
                if state is InstallState.INSTALLED and not source.is_local:
                    self.fetcher.remove(name)
                    state = InstallState.NOT_INSTALLED

        if state is InstallState.CORRUPT:
            logger.warning(f"Working copy of {name} is unusable, fetching again")
            self.fetcher.remove(name)
            state = InstallState.NOT_INSTALLED

        if source.is_local:
            if state is InstallState.NOT_INSTALLED:
                logger.info(f"Linking {name} -> {source.origin}")
                self.fetcher.link_local(name, source)
                action = InstallAction.LINKED
            else:
                logger.debug(f"{name} already linked")
                action = InstallAction.UP_TO_DATE
            commit = LOCAL_COMMIT

        elif state is InstallState.NOT_INSTALLED:
            if entry is not None and not entry.is_local:
                logger.info(f"Installing {name} at {short(entry.commit)}")
                self.fetcher.pin_exact(name, source, entry.commit)
                commit = entry.commit
            else:
                logger.info(f"Installing {name}")
                _, commit = self.fetcher.ref_acquire(name, source)
            action = InstallAction.FETCHED

        elif entry is None or entry.is_local:
            commit = self.fetcher.revision(name)
            logger.info(f"Locking installed {name} at {short(commit)}")
            action = InstallAction.ADOPTED

        elif frozen:
            current = self.fetcher.revision(name)
            if current != entry.commit:
                logger.warning(
                    f"{name} is at {short(current)}, checking out locked "
                    f"{short(entry.commit)}"
                )
                self.fetcher.repin(name, entry.commit)
                action = InstallAction.REPINNED
            else:
                logger.debug(f"{name} already at {short(current)}")
                action = InstallAction.UP_TO_DATE
            commit = entry.commit

        else:
            logger.debug(f"{name} already installed")
            commit = entry.commit
            action = InstallAction.UP_TO_DATE

        lock.set(name, LockEntry(dep.specifier, source.origin, commit))
        return InstallOutcome(name, action, commit)

    # -------------------------------------------------------------------------
    # add
    # -------------------------------------------------------------------------

    def add(self, specifier: str, dev: bool = False) -> AddResult:
        """
        Declare, fetch and lock a new dependency.

        A package that is already declared and installed is updated instead.

        Args:
            specifier: Package specifier
            dev: Declare under devDependencies

        Returns:
            AddResult describing the locked revision

        Raises:
            InvalidSpecifierError: If the specifier cannot be parsed
            FetchFailedError: If fetching fails (nothing is written)
        """
        parsed = self._parse(specifier)
        name, source = parsed.name, parsed.source

        manifest = ProjectManifest.load(self.project_root)
        existing = manifest.find(name)
        if existing is not None and self._is_installed(existing):
            logger.info(f"Package {name} already exists, updating")
            result = self.update(name)[0]
            if result.error is not None:
                raise result.error
            return AddResult(
                name=name,
                specifier=existing.specifier,
                dev=existing.dev,
                commit=result.new_commit or LOCAL_COMMIT,
                collection=self.fetcher.collection_path(name),
                update=result,
            )

        lock = self.lock_manager.load()
        lock_path = self.lock_manager.lock_file_path
        previous_lock = lock_path.read_text(encoding="utf-8") if lock_path.exists() else None

        logger.info(f"Adding package: {name}")
        if source.is_local:
            self.fetcher.link_local(name, source)
            commit = LOCAL_COMMIT
        else:
            _, commit = self.fetcher.ref_acquire(name, source)

        lock.set(name, LockEntry(specifier, source.origin, commit))

        collection = self.fetcher.collection_path(name)
        manifest.remove_dependency(name)
        manifest.set_dependency(name, specifier, dev=dev)
        manifest.set_collection(name, collection)

        try:
            self.lock_manager.save(lock)
        except OSError:
            self.fetcher.remove(name)
            raise

        try:
            manifest.save()
        except OSError:
            logger.error(f"Failed to write {manifest.path}, rolling back {name}")
            if previous_lock is None:
                lock_path.unlink(missing_ok=True)
            else:
                atomic_write(lock_path, previous_lock)
            self.fetcher.remove(name)
            raise

        return AddResult(
            name=name, specifier=specifier, dev=dev, commit=commit, collection=collection
        )

    # -------------------------------------------------------------------------
    # update
    # -------------------------------------------------------------------------

    def update(self, name: Optional[str] = None, dry_run: bool = False) -> List[UpdateResult]:
        """
        Move remote dependencies to the current tip of their ref.

        Args:
            name: Single package to update (all declared packages if None)
            dry_run: Report what would change without touching anything

        Returns:
            One UpdateResult per considered package

        Raises:
            PackageNotInstalledError: If ``name`` is undeclared or not installed
        """
        manifest = ProjectManifest.load(self.project_root)
        lock = self.lock_manager.load()
        original = lock.copy()

        if name is not None:
            dep = manifest.find(name)
            if dep is None or not self._is_installed(dep):
                raise PackageNotInstalledError(name)
            targets = [dep]
        else:
            targets = manifest.declared()

        results = []
        for dep in targets:
            try:
                result = self._update_one(dep, lock, dry_run)
            except (PackageError, FilesystemError) as e:
                logger.error(f"Failed to update {dep.name}: {e}")
                result = UpdateResult(dep.name, error=e)
            results.append(result)

        if not dry_run:
            self.lock_manager.save_if_changed(lock, original)
        return results

    def _update_one(
        self, dep: DeclaredDependency, lock: LockFile, dry_run: bool
    ) -> UpdateResult:
        name = dep.name
        source = self._parse(dep.specifier).source
        if source.is_local:
            logger.debug(f"Skipping {name} (local path)")
            return UpdateResult(name, skipped="local path")
        if self.fetcher.inspect(name, source) is not InstallState.INSTALLED:
            logger.debug(f"Skipping {name} (not installed)")
            return UpdateResult(name, skipped="not installed")

        old = self.fetcher.revision(name)
        new = self.fetcher.fetch_tip(name, source)
        commits = self.fetcher.pending_commits(name, old, new) if new != old else []
        entry = LockEntry(dep.specifier, source.origin, new)
        lock_changed = lock.get(name) != entry

        if not dry_run:
            if new != old:
                logger.info(f"Updating {name}: {short(old)} -> {short(new)}")
                self.fetcher.fast_forward(name, new)
            elif lock_changed:
                logger.info(f"Locking {name} at {short(new)}")
            lock.set(name, entry)

        return UpdateResult(
            name,
            old_commit=old,
            new_commit=new,
            commits=commits,
            lock_changed=lock_changed,
        )

    # -------------------------------------------------------------------------
    # remove
    # -------------------------------------------------------------------------

    def remove(self, name: str) -> None:
        """
        Drop a dependency from the manifest and lock file and delete its working copy.

        Raises:
            PackageNotInstalledError: If the package is unknown everywhere
        """
        manifest = ProjectManifest.load(self.project_root)
        lock = self.lock_manager.load()

        declared = manifest.find(name) is not None
        locked = lock.get(name) is not None
        on_disk = path_exists(self.fetcher.working_copy(name))
        if not (declared or locked or on_disk):
            raise PackageNotInstalledError(name)

        logger.info(f"Removing {name}")
        previous_manifest = manifest.raw_text
        original = lock.copy()

        manifest.remove_dependency(name)
        manifest.remove_collection(name)
        lock.remove(name)

        manifest_written = manifest.save_if_modified()
        try:
            self.lock_manager.save_if_changed(lock, original)
        except OSError:
            if manifest_written:
                logger.error(f"Failed to write lock file, restoring {manifest.path}")
                manifest.restore(previous_manifest)
            raise

        self.fetcher.remove(name)

    # -------------------------------------------------------------------------
    # list
    # -------------------------------------------------------------------------

    def list(self) -> List[PackageStatus]:
        """Declared dependencies with their install state and locked revision."""
        manifest = ProjectManifest.load(self.project_root)
        lock = self.lock_manager.load()

        statuses = []
        for dep in manifest.declared():
            entry = lock.get(dep.name)
            status = PackageStatus(
                name=dep.name,
                specifier=dep.specifier,
                dev=dep.dev,
                state=InstallState.NOT_INSTALLED,
                commit=entry.commit if entry else None,
            )
            try:
                source = self._parse(dep.specifier).source
                status.state = self.fetcher.inspect(dep.name, source)
            except InvalidSpecifierError as e:
                status.error = str(e)
            statuses.append(status)
        return statuses
