"""Object store implementations."""

from worker_operator.store.memory import InMemoryObjectStore

__all__ = ["InMemoryObjectStore"]
