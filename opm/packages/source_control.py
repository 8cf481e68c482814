"""
Version control port for the package engine.

The reconciler and fetcher never invoke a VCS binary directly. They talk to a
SourceControl implementation, which keeps the engine testable and lets a
library-backed implementation replace the subprocess one.

Classes:
    SourceControl: Abstract interface of the VCS operations opm needs
    GitSourceControl: Implementation that shells out to the git executable

Example:
    from pathlib import Path
    from opm.packages.source_control import GitSourceControl

    git = GitSourceControl()
    git.clone_shallow("https://github.com/acme/widgets", Path("/tmp/widgets"), ref="v1.0.0")
    print(git.current_revision(Path("/tmp/widgets")))
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from opm.core.exceptions import SourceControlError

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Source Control
# =============================================================================


class SourceControl(ABC):
    """
    Abstract interface for the version control operations opm performs.

    Every method raises SourceControlError on failure.
    """

    @abstractmethod
    def clone_shallow(self, url: str, dest: Path, ref: Optional[str] = None) -> None:
        """
        Clone the tip of ``ref`` (default branch if None) with minimal history.

        Args:
            url: Repository URL or path
            dest: Directory to clone into (must not exist)
            ref: Branch or tag name
        """
        pass

    @abstractmethod
    def clone_bare(self, url: str, dest: Path) -> None:
        """
        Clone full history without checking out a working tree.

        A later checkout() selects the revision, so the revision does not
        have to be reachable from any particular branch tip.
        """
        pass

    @abstractmethod
    def checkout(self, repo: Path, revision: str, force: bool = False) -> None:
        """Check out ``revision`` in ``repo``, discarding local changes if ``force``."""
        pass

    @abstractmethod
    def fetch(self, repo: Path, ref: Optional[str] = None) -> str:
        """
        Fetch ``ref`` (remote default branch if None) from the origin remote.

        Returns:
            The fetched revision
        """
        pass

    @abstractmethod
    def fast_forward(self, repo: Path, revision: str) -> None:
        """Advance the working copy to ``revision``; refuse anything but a fast-forward."""
        pass

    @abstractmethod
    def current_revision(self, repo: Path) -> str:
        """Return the revision currently checked out in ``repo``."""
        pass

    @abstractmethod
    def commits_between(self, repo: Path, old: str, new: str) -> List[str]:
        """Return one-line summaries of commits reachable from ``new`` but not ``old``."""
        pass

    def is_repository(self, repo: Path) -> bool:
        """
        Check whether ``repo`` holds a usable working copy.

        Returns:
            True if a revision is checked out in ``repo``
        """
        try:
            self.current_revision(repo)
            return True
        except SourceControlError:
            return False


# =============================================================================
# git subprocess implementation
# =============================================================================


class GitSourceControl(SourceControl):
    """
    SourceControl backed by the ``git`` command line.

    Network timeouts are left to git's own transport defaults.

    Attributes:
        executable: git executable name or path
    """

    def __init__(self, executable: str = "git"):
        self.executable = executable

    def _run(self, args: List[str], cwd: Optional[Path] = None) -> str:
        command = [self.executable, *args]
        logger.debug(f"Running: {' '.join(command)}" + (f" (in {cwd})" if cwd else ""))

        if cwd is not None and not Path(cwd).is_dir():
            raise SourceControlError(command, f"not a directory: {cwd}")

        env = dict(os.environ)
        # Never block on a credential prompt
        env["GIT_TERMINAL_PROMPT"] = "0"
        if cwd:
            # A broken working copy must not resolve to an enclosing repository
            env["GIT_CEILING_DIRECTORIES"] = str(Path(cwd).resolve().parent)

        try:
            result = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                env=env,
            )
        except FileNotFoundError:
            raise SourceControlError(command, f"{self.executable} executable not found")
        except OSError as e:
            raise SourceControlError(command, str(e))

        if result.returncode != 0:
            raise SourceControlError(command, (result.stderr or "").strip())

        return (result.stdout or "").strip()

    def clone_shallow(self, url: str, dest: Path, ref: Optional[str] = None) -> None:
        args = ["clone", "--quiet", "--depth", "1"]
        if ref:
            args.extend(["--branch", ref])
        args.extend([url, str(dest)])
        self._run(args)

    def clone_bare(self, url: str, dest: Path) -> None:
        self._run(["clone", "--quiet", "--no-checkout", url, str(dest)])

    def checkout(self, repo: Path, revision: str, force: bool = False) -> None:
        args = ["checkout", "--quiet"]
        if force:
            args.append("--force")
        args.extend([revision, "--"])
        self._run(args, cwd=repo)

    def fetch(self, repo: Path, ref: Optional[str] = None) -> str:
        self._run(["fetch", "--quiet", "origin", ref or "HEAD"], cwd=repo)
        # Peel annotated tags down to the commit they point at
        return self._run(["rev-parse", "FETCH_HEAD^{commit}"], cwd=repo)

    def fast_forward(self, repo: Path, revision: str) -> None:
        self._run(["merge", "--quiet", "--ff-only", revision], cwd=repo)

    def current_revision(self, repo: Path) -> str:
        return self._run(["rev-parse", "HEAD"], cwd=repo)

    def commits_between(self, repo: Path, old: str, new: str) -> List[str]:
        output = self._run(["log", "--oneline", f"{old}..{new}"], cwd=repo)
        return [line for line in output.splitlines() if line.strip()]
