"""Error hierarchy for object-store access and reconciliation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from worker_operator.models.meta import ObjectKey


class StoreError(Exception):
    """Base exception for object-store failures.

    Carries the object kind and key the failing call was made for, and
    preserves the underlying client error via exception chaining.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        key: ObjectKey | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.key = key
        self.cause = cause
        self.__cause__ = cause


class NotFoundError(StoreError):
    """Object does not exist in the store."""

    def __init__(self, kind: str, key: ObjectKey, cause: Exception | None = None) -> None:
        super().__init__(f"{kind} {key} not found", kind=kind, key=key, cause=cause)


class AlreadyExistsError(StoreError):
    """Create rejected because an object with the same key exists."""

    def __init__(self, kind: str, key: ObjectKey, cause: Exception | None = None) -> None:
        super().__init__(f"{kind} {key} already exists", kind=kind, key=key, cause=cause)


class ConflictError(StoreError):
    """Write rejected because the object changed since it was read."""

    def __init__(self, kind: str, key: ObjectKey, cause: Exception | None = None) -> None:
        super().__init__(
            f"{kind} {key} was modified concurrently", kind=kind, key=key, cause=cause
        )


class TransientStoreError(StoreError):
    """Store unavailable or returned an unexpected error; safe to retry."""


class OwnershipError(RuntimeError):
    """Owner reference cannot be attached to a child object."""


class AlreadyOwnedError(OwnershipError):
    """Child object is already controlled by a different owner."""

    def __init__(self, child: str, current_owner: str) -> None:
        super().__init__(f"{child} is already controlled by {current_owner}")
        self.child = child
        self.current_owner = current_owner


class TemplatePreconditionError(IndexError):
    """Worker template violates a precondition the builder relies on."""
