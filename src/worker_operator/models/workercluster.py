"""WorkerCluster desired-state resource."""

from __future__ import annotations

from pydantic import Field

from worker_operator.models.enums import Kind
from worker_operator.models.meta import ApiModel, ApiObject, LabelSelector
from worker_operator.models.workload import PodTemplateSpec

WORKER_CLUSTER_GROUP = "travisci.com"
WORKER_CLUSTER_VERSION = "v1alpha1"
WORKER_CLUSTER_PLURAL = "workerclusters"
WORKER_CLUSTER_API_VERSION = f"{WORKER_CLUSTER_GROUP}/{WORKER_CLUSTER_VERSION}"


class WorkerStatus(ApiModel):
    """Observed pool sizes of one worker pod."""

    name: str
    current_pool_size: int
    expected_pool_size: int
    requested_pool_size: int


class WorkerClusterStatus(ApiModel):
    """Status sub-object, regenerated in full on every reconciliation pass."""

    worker_statuses: list[WorkerStatus] = Field(default_factory=list)


class WorkerClusterSpec(ApiModel):
    selector: LabelSelector
    template: PodTemplateSpec


class WorkerCluster(ApiObject):
    """Declared worker fleet: one container template plus a pod selector."""

    api_version: str = WORKER_CLUSTER_API_VERSION
    kind: str = Kind.WORKER_CLUSTER.value
    spec: WorkerClusterSpec
    status: WorkerClusterStatus | None = None
