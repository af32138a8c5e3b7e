"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.review.models import ItemState, ReviewItem  # noqa: E402
from tests.fakes import FakeNotifier, FakeRecorder, FakeScheduler  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def sample_items():
    """A small due batch covering every mastery state."""
    return [
        ReviewItem("hola", ["hello", "hi"], ItemState.LEARNED),
        ReviewItem("gato", ["cat"], ItemState.NEW),
        ReviewItem("perro", ["dog"], ItemState.RELEARNING1),
        ReviewItem("casa", ["house", "home"], ItemState.RELEARNING2),
    ]


@pytest.fixture
def sample_deck_rows():
    """Deck JSON rows as stored on disk."""
    return [
        {"key": "hola", "meanings": ["hello", "hi"], "state": "learned"},
        {"key": "gato", "meanings": ["cat"], "state": "new"},
        {"key": "perro", "meanings": "dog"},
    ]
