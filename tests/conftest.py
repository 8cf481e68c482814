"""
Pytest configuration and shared fixtures for opm tests.
"""

import pytest
import tempfile
from pathlib import Path
from typing import Generator

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.projects import (
    project_root,
    local_package,
    fake_git,
    reconciler,
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require a git executable",
    )


def pytest_collection_modifyitems(config, items):
    """
    Skip integration tests unless --integration flag is provided.
    """
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture(autouse=True)
def isolated_home(temp_dir: Path, monkeypatch) -> Path:
    """Point OPM_HOME at an empty directory and clear setting overrides."""
    fake_home = temp_dir / "opm-home"
    fake_home.mkdir()

    monkeypatch.setenv("OPM_HOME", str(fake_home))
    monkeypatch.delenv("OPM_PACKAGES_DIR", raising=False)
    monkeypatch.delenv("OPM_GIT", raising=False)

    return fake_home
