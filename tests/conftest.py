"""Pytest configuration for paramdeck tests.

Ensures the project root is in sys.path so imports work correctly, and
provides an engine wired to an in-memory store and a fake browser.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from core.parameters import ParameterEngine  # noqa: E402
from storage.providers.memory import MemoryKVStore  # noqa: E402
from tests.fakes.target import FakeTarget, RecordingWaiter  # noqa: E402

TAB = 7
TAB_ADDRESS = "https://example.com/page"


@pytest.fixture
def store():
    return MemoryKVStore()


@pytest.fixture
def target():
    return FakeTarget({TAB: TAB_ADDRESS, 8: "https://other.test/"})


@pytest.fixture
def waiter():
    return RecordingWaiter()


@pytest.fixture
def engine(store, target, waiter):
    return ParameterEngine(store, target, waiter)
