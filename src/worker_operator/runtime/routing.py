"""Maps changed child objects to the WorkerCluster that must be reconciled."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from worker_operator.models.enums import Kind
from worker_operator.models.meta import ObjectKey, ObjectMeta
from worker_operator.models.workercluster import WORKER_CLUSTER_GROUP


def owner_cluster_key(
    meta: Mapping[str, Any], *, group: str = WORKER_CLUSTER_GROUP
) -> ObjectKey | None:
    """Return the key of the WorkerCluster in `group` controlling an object.

    `meta` is the object's raw metadata. Objects without such a controller
    map to None.
    """
    metadata = ObjectMeta.model_validate(dict(meta))
    owner = metadata.controller_reference()
    if owner is None or owner.kind != Kind.WORKER_CLUSTER:
        return None
    owner_group, _, _ = owner.api_version.partition("/")
    if owner_group != group:
        return None
    return ObjectKey(namespace=metadata.namespace, name=owner.name)
