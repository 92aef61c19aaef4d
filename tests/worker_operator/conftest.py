"""Shared pytest fixtures for worker operator tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from tests.worker_operator.mocks import FlakyObjectStore
from worker_operator.store import InMemoryObjectStore


@pytest.fixture
def store() -> InMemoryObjectStore:
    """Empty in-memory store shared by the reconciler and the test."""
    return InMemoryObjectStore()


@pytest.fixture
def flaky_store(store: InMemoryObjectStore) -> FlakyObjectStore:
    """Failure-injecting view of `store`."""
    return FlakyObjectStore(store)
