"""
Project fixtures for testing.

Provides opm projects (opm.json on disk) and a FakeSourceControl pre-loaded
with a couple of remotes.
"""

import json
from pathlib import Path

import pytest

from opm.config.settings import Settings
from opm.packages.reconciler import DependencyReconciler
from tests.mocks.source_control import FakeRemote, FakeSourceControl

WIDGETS_URL = "https://github.com/acme/widgets"
GADGETS_URL = "https://github.com/acme/gadgets"


def write_manifest(project_root: Path, data: dict) -> Path:
    """Write ``data`` as the project's opm.json."""
    path = project_root / "opm.json"
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def read_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def project_root(temp_dir: Path) -> Path:
    """
    Create a project with an empty dependency list.

    Structure:
        project/
        └── opm.json
    """
    root = temp_dir / "project"
    root.mkdir()
    write_manifest(
        root,
        {
            "name": "demo",
            "version": "0.1.0",
            "scripts": {"build": "odin build src"},
            "dependencies": {},
        },
    )
    return root


@pytest.fixture
def local_package(temp_dir: Path) -> Path:
    """Create a local Odin package directory outside the project."""
    pkg = temp_dir / "libs" / "mylib"
    pkg.mkdir(parents=True)
    (pkg / "mylib.odin").write_text("package mylib\n", encoding="utf-8")
    return pkg


@pytest.fixture
def fake_git() -> FakeSourceControl:
    """FakeSourceControl serving acme/widgets (with a v1.0.0 tag) and acme/gadgets."""
    widgets = FakeRemote(WIDGETS_URL, commits=3)
    widgets.tag("v1.0.0")
    gadgets = FakeRemote(GADGETS_URL, commits=2)
    return FakeSourceControl(widgets, gadgets)


@pytest.fixture
def reconciler(project_root: Path, fake_git: FakeSourceControl) -> DependencyReconciler:
    """Reconciler for ``project_root`` using the fake git backend."""
    return DependencyReconciler(project_root, Settings(), source_control=fake_git)
