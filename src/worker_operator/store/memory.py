"""In-memory object store.

Mirrors the API-server behaviors the operator relies on: server-assigned uids
and resource versions, optimistic concurrency on updates, no-op updates that
do not bump the version, and cascading deletion through owner references.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from worker_operator.errors import AlreadyExistsError, ConflictError, NotFoundError
from worker_operator.interfaces import ObjectStore
from worker_operator.models.enums import Kind
from worker_operator.models.meta import ApiObject, LabelSelector, ObjectKey

logger = logging.getLogger(__name__)


class InMemoryObjectStore(ObjectStore):
    """Process-local store; every read returns a private copy."""

    def __init__(self) -> None:
        self._objects: dict[tuple[Kind, ObjectKey], ApiObject] = {}
        self._resource_version = 0

    async def get(self, kind: Kind, key: ObjectKey) -> ApiObject:
        return self._require(kind, key).model_copy(deep=True)

    async def create(self, obj: ApiObject) -> ApiObject:
        kind = Kind(obj.kind)
        if (kind, obj.key) in self._objects:
            raise AlreadyExistsError(kind, obj.key)

        stored = obj.model_copy(deep=True)
        stored.metadata.uid = str(uuid.uuid4())
        stored.metadata.resource_version = self._next_resource_version()
        stored.metadata.generation = 1
        self._objects[(kind, obj.key)] = stored
        return stored.model_copy(deep=True)

    async def list(
        self, kind: Kind, namespace: str, selector: LabelSelector
    ) -> list[ApiObject]:
        return [
            obj.model_copy(deep=True)
            for (obj_kind, key), obj in self._objects.items()
            if obj_kind == kind
            and key.namespace == namespace
            and selector.matches(obj.metadata.labels)
        ]

    async def update(self, obj: ApiObject) -> ApiObject:
        kind = Kind(obj.kind)
        stored = self._require(kind, obj.key)
        self._check_version(kind, obj, stored)

        updated = obj.model_copy(deep=True)
        updated.metadata.uid = stored.metadata.uid
        if _has_status(stored):
            updated.status = stored.status  # type: ignore[attr-defined]
        if _content(updated) == _content(stored):
            return stored.model_copy(deep=True)

        updated.metadata.generation = (stored.metadata.generation or 0) + 1
        return self._replace(kind, updated)

    async def update_status(self, obj: ApiObject) -> ApiObject:
        kind = Kind(obj.kind)
        stored = self._require(kind, obj.key)
        self._check_version(kind, obj, stored)
        if not _has_status(stored):
            raise TypeError(f"{kind} has no status sub-object")

        updated = stored.model_copy(deep=True)
        status = getattr(obj, "status", None)
        if status is not None:
            status = status.model_copy(deep=True)
        setattr(updated, "status", status)
        if _content(updated) == _content(stored):
            return stored.model_copy(deep=True)
        return self._replace(kind, updated)

    async def delete(self, kind: Kind, key: ObjectKey) -> None:
        """Delete an object and, transitively, everything it owns."""
        stored = self._require(kind, key)
        del self._objects[(kind, key)]

        owned = [
            (child_kind, child_key)
            for (child_kind, child_key), child in self._objects.items()
            if any(ref.uid == stored.metadata.uid for ref in child.metadata.owner_references)
        ]
        for child_kind, child_key in owned:
            if (child_kind, child_key) in self._objects:
                logger.debug(
                    "Garbage collecting %s %s owned by %s %s", child_kind, child_key, kind, key
                )
                await self.delete(child_kind, child_key)

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout

    def _require(self, kind: Kind, key: ObjectKey) -> ApiObject:
        stored = self._objects.get((kind, key))
        if stored is None:
            raise NotFoundError(kind, key)
        return stored

    def _check_version(self, kind: Kind, obj: ApiObject, stored: ApiObject) -> None:
        expected = obj.metadata.resource_version
        if expected is not None and expected != stored.metadata.resource_version:
            raise ConflictError(kind, obj.key)

    def _replace(self, kind: Kind, updated: ApiObject) -> ApiObject:
        updated.metadata.resource_version = self._next_resource_version()
        self._objects[(kind, updated.key)] = updated
        return updated.model_copy(deep=True)

    def _next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)


def _has_status(obj: ApiObject) -> bool:
    return "status" in type(obj).model_fields


def _content(obj: ApiObject) -> dict[str, Any]:
    manifest = obj.to_manifest()
    manifest["metadata"].pop("resourceVersion", None)
    return manifest
