"""Test fixtures for opm tests.

This package provides reusable pytest fixtures:

- projects: opm projects on disk, local packages and a fake git backend

Import fixtures in your tests using:
    from tests.fixtures.projects import project_root
"""

__all__ = [
    "projects",
]
