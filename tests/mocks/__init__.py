"""
Mock implementations for testing opm components.

This package provides stand-ins for external dependencies (git, the GitHub
API) to enable isolated, deterministic testing.
"""

from .source_control import FakeRemote, FakeSourceControl, make_commit
from .network import MockResponse, MockSession

__all__ = [
    "FakeRemote",
    "FakeSourceControl",
    "make_commit",
    "MockResponse",
    "MockSession",
]
