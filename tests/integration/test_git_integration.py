"""
Integration tests for the package engine against real git repositories.

Upstream repositories are created in the temporary directory and served via
file:// URLs, so no network access is needed.
"""

import shutil
import subprocess

import pytest

from opm.config.settings import Settings
from opm.core.exceptions import FetchFailedError
from opm.packages.reconciler import DependencyReconciler, InstallAction
from opm.packages.source_control import GitSourceControl
from tests.fixtures.projects import read_json

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git not installed"),
]


def git(*args, cwd):
    result = subprocess.run(
        ["git", "-c", "user.name=opm", "-c", "user.email=opm@example.com", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit(repo, filename, message):
    (repo / filename).write_text(f"// {message}\n", encoding="utf-8")
    git("add", filename, cwd=repo)
    git("commit", "--quiet", "-m", message, cwd=repo)
    return git("rev-parse", "HEAD", cwd=repo)


@pytest.fixture
def upstream(temp_dir):
    """An upstream repository with two commits and a v1.0.0 tag."""
    repo = temp_dir / "upstream" / "widgets"
    repo.mkdir(parents=True)
    git("init", "--quiet", cwd=repo)
    commit(repo, "widgets.odin", "Initial commit")
    commit(repo, "button.odin", "Add button")
    git("tag", "v1.0.0", cwd=repo)
    return repo


@pytest.fixture
def git_reconciler(project_root):
    return DependencyReconciler(project_root, Settings(), GitSourceControl())


class TestGitIntegration:
    """End-to-end add/update/install with the git executable."""

    def test_add_locks_head(self, git_reconciler, project_root, upstream):
        head = git("rev-parse", "HEAD", cwd=upstream)

        result = git_reconciler.add(f"git:{upstream.as_uri()}")

        assert result.name == "widgets"
        assert result.commit == head
        working_copy = project_root / "odin_packages" / "widgets"
        assert (working_copy / "button.odin").exists()
        assert read_json(project_root / "opm.lock")["packages"]["widgets"]["commit"] == head

    def test_add_tag(self, git_reconciler, upstream):
        tagged = git("rev-parse", "HEAD", cwd=upstream)
        commit(upstream, "slider.odin", "Add slider")

        result = git_reconciler.add(f"git:{upstream.as_uri()}#v1.0.0")

        assert result.commit == tagged

    def test_annotated_tag_locks_commit(self, git_reconciler, project_root, upstream):
        git("tag", "-a", "v2.0.0", "-m", "Release 2.0.0", cwd=upstream)
        tagged = git("rev-parse", "v2.0.0^{commit}", cwd=upstream)
        assert git("rev-parse", "v2.0.0", cwd=upstream) != tagged

        assert git_reconciler.add(f"git:{upstream.as_uri()}#v2.0.0").commit == tagged

        preview = git_reconciler.update(dry_run=True)[0]
        assert preview.new_commit == tagged
        assert not preview.changed

        git_reconciler.update("widgets")
        assert read_json(project_root / "opm.lock")["packages"]["widgets"]["commit"] == tagged

        report = git_reconciler.install(frozen=True)
        assert report.outcomes[0].action is InstallAction.UP_TO_DATE

    def test_update(self, git_reconciler, project_root, upstream):
        git_reconciler.add(f"git:{upstream.as_uri()}")
        new_head = commit(upstream, "slider.odin", "Add slider")

        preview = git_reconciler.update(dry_run=True)
        assert preview[0].new_commit == new_head
        assert len(preview[0].commits) == 1
        assert "Add slider" in preview[0].commits[0]
        assert not (project_root / "odin_packages" / "widgets" / "slider.odin").exists()

        results = git_reconciler.update("widgets")

        assert results[0].changed
        assert (project_root / "odin_packages" / "widgets" / "slider.odin").exists()
        lock = read_json(project_root / "opm.lock")
        assert lock["packages"]["widgets"]["commit"] == new_head

    def test_install_restores_locked_revision(self, git_reconciler, project_root, upstream):
        locked = git_reconciler.add(f"git:{upstream.as_uri()}").commit
        commit(upstream, "slider.odin", "Add slider")
        shutil.rmtree(project_root / "odin_packages")

        report = git_reconciler.install()

        assert report.success
        assert report.outcomes[0].action is InstallAction.FETCHED
        working_copy = project_root / "odin_packages" / "widgets"
        assert git("rev-parse", "HEAD", cwd=working_copy) == locked
        assert not (working_copy / "slider.odin").exists()

    def test_frozen_install_from_lock(self, git_reconciler, project_root, upstream):
        locked = git_reconciler.add(f"git:{upstream.as_uri()}").commit
        shutil.rmtree(project_root / "odin_packages")

        report = git_reconciler.install(frozen=True)

        assert report.success
        assert not report.lockfile_written
        assert report.outcomes[0].commit == locked

    def test_unreachable_repository(self, git_reconciler, project_root, temp_dir):
        with pytest.raises(FetchFailedError):
            git_reconciler.add(f"git:{(temp_dir / 'nowhere.git').as_uri()}")

        assert not (project_root / "opm.lock").exists()
        assert not (project_root / "odin_packages" / "nowhere").exists()
