"""Kind-to-model registry used to decode API manifests."""

from __future__ import annotations

from typing import Any

from worker_operator.models.enums import Kind
from worker_operator.models.meta import ApiObject
from worker_operator.models.workercluster import WorkerCluster
from worker_operator.models.workload import Deployment, Pod

MODEL_BY_KIND: dict[Kind, type[ApiObject]] = {
    Kind.WORKER_CLUSTER: WorkerCluster,
    Kind.DEPLOYMENT: Deployment,
    Kind.POD: Pod,
}


def decode_object(kind: Kind, raw: dict[str, Any]) -> ApiObject:
    """Validate a camelCase manifest into the model registered for `kind`."""
    return MODEL_BY_KIND[kind].model_validate(raw)
