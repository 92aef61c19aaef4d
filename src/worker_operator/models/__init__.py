"""Data models for the worker operator."""

from worker_operator.models.config import (
    Config,
    ControllerConfig,
    ControlPlaneConfig,
    HealthConfig,
    KubernetesStoreConfig,
    ResourceConfig,
    StoreConfig,
)
from worker_operator.models.enums import Kind, SpecDriftPolicy
from worker_operator.models.meta import (
    ApiModel,
    ApiObject,
    LabelSelector,
    ObjectKey,
    ObjectMeta,
    OwnerReference,
)
from worker_operator.models.workercluster import (
    WorkerCluster,
    WorkerClusterSpec,
    WorkerClusterStatus,
    WorkerStatus,
)
from worker_operator.models.workload import (
    Container,
    Deployment,
    DeploymentSpec,
    DeploymentStrategy,
    EnvVar,
    Pod,
    PodSpec,
    PodTemplateSpec,
    RollingUpdateDeployment,
    TemplateMetadata,
)

__all__ = [
    "ApiModel",
    "ApiObject",
    "Config",
    "ControlPlaneConfig",
    "Container",
    "ControllerConfig",
    "Deployment",
    "DeploymentSpec",
    "DeploymentStrategy",
    "EnvVar",
    "HealthConfig",
    "Kind",
    "KubernetesStoreConfig",
    "LabelSelector",
    "ObjectKey",
    "ObjectMeta",
    "OwnerReference",
    "Pod",
    "PodSpec",
    "PodTemplateSpec",
    "ResourceConfig",
    "RollingUpdateDeployment",
    "SpecDriftPolicy",
    "StoreConfig",
    "TemplateMetadata",
    "WorkerCluster",
    "WorkerClusterSpec",
    "WorkerClusterStatus",
    "WorkerStatus",
]
