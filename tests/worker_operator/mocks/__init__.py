"""Mock implementations for testing."""

from tests.worker_operator.mocks.object_store import FlakyObjectStore

__all__ = [
    "FlakyObjectStore",
]
