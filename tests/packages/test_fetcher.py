"""
Tests for working copy materialization.
"""

from pathlib import Path

import pytest

from opm.core.exceptions import FetchFailedError
from opm.packages.fetcher import InstallState, SourceFetcher, short
from opm.packages.specifier import SourceDescriptor, SourceKind
from tests.fixtures.projects import GADGETS_URL, WIDGETS_URL
from tests.mocks.source_control import STATE_FILE, make_commit


def remote(url: str = WIDGETS_URL, hint=None) -> SourceDescriptor:
    return SourceDescriptor(SourceKind.REMOTE_GIT, url, hint)


def local(path) -> SourceDescriptor:
    return SourceDescriptor(SourceKind.LOCAL_PATH, str(path))


@pytest.fixture
def fetcher(project_root: Path, fake_git) -> SourceFetcher:
    return SourceFetcher(project_root, project_root / "odin_packages", fake_git)


def leftovers(fetcher: SourceFetcher):
    """Entries in the packages directory other than working copies."""
    if not fetcher.packages_dir.exists():
        return []
    return [p.name for p in fetcher.packages_dir.iterdir() if p.name.startswith(".opm-")]


class TestRefAcquire:
    """Test shallow clones at a branch or tag."""

    def test_default_branch(self, fetcher, fake_git):
        path, commit = fetcher.ref_acquire("widgets", remote())

        assert path == fetcher.packages_dir / "widgets"
        assert commit == fake_git.remotes[WIDGETS_URL].tip()
        assert (path / "README.md").exists()
        assert leftovers(fetcher) == []

    def test_tag(self, fetcher, fake_git):
        widgets = fake_git.remotes[WIDGETS_URL]
        tagged = widgets.tip("v1.0.0")
        widgets.push()

        _, commit = fetcher.ref_acquire("widgets", remote(hint="v1.0.0"))

        assert commit == tagged
        assert fake_git.calls_to("clone_shallow")[0][2] == "v1.0.0"

    def test_failure_leaves_nothing_behind(self, fetcher):
        """Test that a failed clone never appears under the package name."""
        with pytest.raises(FetchFailedError) as exc_info:
            fetcher.ref_acquire("widgets", remote(hint="no-such-branch"))

        assert exc_info.value.name == "widgets"
        assert not (fetcher.packages_dir / "widgets").exists()
        assert leftovers(fetcher) == []

    def test_replaces_existing_directory(self, fetcher):
        stale = fetcher.packages_dir / "widgets"
        stale.mkdir(parents=True)
        (stale / "junk.txt").write_text("x")

        path, _ = fetcher.ref_acquire("widgets", remote())

        assert not (path / "junk.txt").exists()
        assert (path / STATE_FILE).exists()


class TestPinExact:
    """Test clones at an exact revision."""

    def test_checks_out_revision(self, fetcher, fake_git):
        first = fake_git.remotes[WIDGETS_URL].refs["main"][0]

        path = fetcher.pin_exact("widgets", remote(), first)

        assert fake_git.current_revision(path) == first
        assert fake_git.calls_to("clone_bare")
        assert not fake_git.calls_to("clone_shallow")

    def test_unknown_revision(self, fetcher):
        with pytest.raises(FetchFailedError):
            fetcher.pin_exact("widgets", remote(), make_commit("missing"))

        assert not (fetcher.packages_dir / "widgets").exists()
        assert leftovers(fetcher) == []

    def test_unknown_repository(self, fetcher):
        with pytest.raises(FetchFailedError, match="Failed to fetch nope"):
            fetcher.pin_exact("nope", remote("https://github.com/acme/nope"), "abc")


class TestLinkLocal:
    """Test local-path links."""

    def test_links_directory(self, fetcher, local_package):
        path = fetcher.link_local("mylib", local(local_package))

        assert path.is_symlink()
        assert path.resolve() == local_package
        assert (path / "mylib.odin").exists()

    def test_relative_path_resolved_against_project(self, fetcher, project_root, local_package):
        relative = Path("..") / "libs" / "mylib"

        path = fetcher.link_local("mylib", local(relative))

        assert path.resolve() == local_package

    def test_missing_target(self, fetcher, temp_dir):
        with pytest.raises(FetchFailedError, match="does not exist"):
            fetcher.link_local("ghost", local(temp_dir / "ghost"))

        assert not (fetcher.packages_dir / "ghost").exists()


class TestRepin:
    """Test forcing a working copy back to a locked revision."""

    def test_repin_known_revision(self, fetcher, fake_git):
        widgets = fake_git.remotes[WIDGETS_URL]
        path = fetcher.pin_exact("widgets", remote(), widgets.tip())
        first = widgets.refs["main"][0]

        fetcher.repin("widgets", first)

        assert fake_git.current_revision(path) == first
        assert not fake_git.calls_to("fetch")

    def test_repin_fetches_missing_revision(self, fetcher, fake_git):
        """Test that a shallow clone fetches a revision it does not have."""
        widgets = fake_git.remotes[WIDGETS_URL]
        path, _ = fetcher.ref_acquire("widgets", remote())
        first = widgets.refs["main"][0]

        fetcher.repin("widgets", first)

        assert fake_git.current_revision(path) == first
        assert fake_git.calls_to("fetch")[0][1] == first
        assert fake_git.calls_to("checkout")[-1][2] is True

    def test_repin_unknown_revision(self, fetcher):
        fetcher.ref_acquire("widgets", remote())

        with pytest.raises(FetchFailedError):
            fetcher.repin("widgets", make_commit("gone"))


class TestInspect:
    """Test install state detection."""

    def test_not_installed(self, fetcher):
        assert fetcher.inspect("widgets", remote()) is InstallState.NOT_INSTALLED

    def test_installed_remote(self, fetcher):
        fetcher.ref_acquire("widgets", remote())
        assert fetcher.inspect("widgets", remote()) is InstallState.INSTALLED

    def test_directory_without_repository_is_corrupt(self, fetcher):
        (fetcher.packages_dir / "widgets").mkdir(parents=True)
        assert fetcher.inspect("widgets", remote()) is InstallState.CORRUPT

    def test_link_where_clone_expected_is_corrupt(self, fetcher, local_package):
        fetcher.link_local("widgets", local(local_package))
        assert fetcher.inspect("widgets", remote()) is InstallState.CORRUPT

    def test_installed_local(self, fetcher, local_package):
        fetcher.link_local("mylib", local(local_package))
        assert fetcher.inspect("mylib", local(local_package)) is InstallState.INSTALLED

    def test_dangling_link_is_corrupt(self, fetcher, temp_dir):
        target = temp_dir / "moved"
        target.mkdir()
        fetcher.link_local("mylib", local(target))
        target.rmdir()

        assert fetcher.inspect("mylib", local(target)) is InstallState.CORRUPT

    def test_link_to_other_directory_is_corrupt(self, fetcher, local_package, temp_dir):
        other = temp_dir / "other"
        other.mkdir()
        fetcher.link_local("mylib", local(other))

        assert fetcher.inspect("mylib", local(local_package)) is InstallState.CORRUPT


class TestRemove:
    """Test working copy removal."""

    def test_remove_clone(self, fetcher):
        fetcher.ref_acquire("gadgets", remote(GADGETS_URL))

        assert fetcher.remove("gadgets") is True
        assert not (fetcher.packages_dir / "gadgets").exists()

    def test_remove_link_keeps_target(self, fetcher, local_package):
        fetcher.link_local("mylib", local(local_package))

        fetcher.remove("mylib")

        assert not (fetcher.packages_dir / "mylib").exists()
        assert (local_package / "mylib.odin").exists()

    def test_remove_missing(self, fetcher):
        assert fetcher.remove("nothing") is False


class TestHelpers:
    def test_collection_path_is_project_relative(self, fetcher):
        assert fetcher.collection_path("widgets") == "odin_packages/widgets"

    def test_short(self):
        assert short("0123456789abcdef") == "01234567"
        assert short(None) == "-"
