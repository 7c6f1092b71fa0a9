"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for aws_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from provider.resource import OperationTimeouts  # noqa: E402


@pytest.fixture
def fast_timeouts() -> OperationTimeouts:
    """Wait budgets small enough for tests, poll interval at the floor."""
    return OperationTimeouts(create_seconds=2, delete_seconds=2, poll_interval_seconds=0.01)
