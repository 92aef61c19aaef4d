"""Reads the child deployment and the pods it runs."""

from __future__ import annotations

from typing import cast

from worker_operator.errors import NotFoundError
from worker_operator.interfaces import ObjectStore
from worker_operator.models.enums import Kind
from worker_operator.models.meta import LabelSelector, ObjectKey
from worker_operator.models.workload import Deployment, Pod


class ChildObservationReader:
    """Store queries for a WorkerCluster's children, tolerating absence."""

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    async def get_deployment(self, key: ObjectKey) -> Deployment | None:
        """Return the deployment stored under `key`, or None if it does not exist."""
        try:
            return cast(Deployment, await self._store.get(Kind.DEPLOYMENT, key))
        except NotFoundError:
            return None

    async def list_pods(self, namespace: str, selector: LabelSelector) -> list[Pod]:
        pods = await self._store.list(Kind.POD, namespace, selector)
        return [cast(Pod, pod) for pod in pods]
