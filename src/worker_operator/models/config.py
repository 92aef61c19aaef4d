"""Operator configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from worker_operator.models.enums import SpecDriftPolicy
from worker_operator.models.workercluster import (
    WORKER_CLUSTER_GROUP,
    WORKER_CLUSTER_PLURAL,
    WORKER_CLUSTER_VERSION,
)

DEFAULT_CONTROL_PLANE_ADDR = "0.0.0.0:8080"
# TODO: replace with a per-pod generated secret once the operator queries workers.
DEFAULT_CONTROL_PLANE_AUTH = "worker:worker"


class KubernetesStoreConfig(BaseModel):
    """Kubernetes API connection settings."""

    in_cluster: bool = False
    kubeconfig: str | None = None
    context: str | None = None
    namespace: str | None = None  # None watches all namespaces


class ResourceConfig(BaseModel):
    """Custom resource coordinates of the WorkerCluster kind."""

    group: str = WORKER_CLUSTER_GROUP
    version: str = WORKER_CLUSTER_VERSION
    plural: str = WORKER_CLUSTER_PLURAL

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


class StoreConfig(BaseModel):
    """Kubernetes object store configuration."""

    kubernetes: KubernetesStoreConfig = Field(default_factory=KubernetesStoreConfig)
    resource: ResourceConfig = Field(default_factory=ResourceConfig)


class ControllerConfig(BaseModel):
    """Reconcile pass, retry and resync settings."""

    workers: int = Field(default=2, ge=1)  # concurrent objects handled by kopf
    reconcile_timeout_s: float = Field(default=30.0, gt=0.0)
    resync_interval_s: float = Field(default=300.0, gt=0.0)
    backoff_base_s: float = Field(default=1.0, gt=0.0)
    backoff_max_s: float = Field(default=300.0, gt=0.0)
    drift_policy: SpecDriftPolicy = SpecDriftPolicy.IGNORE

    @model_validator(mode="after")
    def _validate_backoff(self) -> ControllerConfig:
        if self.backoff_max_s < self.backoff_base_s:
            raise ValueError("controller.backoff_max_s must be >= controller.backoff_base_s")
        return self


class ControlPlaneConfig(BaseModel):
    """Address and credential injected into worker containers.

    Workers expose a pool-size adjustment API on this address; the operator
    will use the same credential to talk to it.
    """

    addr: str = DEFAULT_CONTROL_PLANE_ADDR
    auth: str = DEFAULT_CONTROL_PLANE_AUTH
    auth_env: str | None = None


class HealthConfig(BaseModel):
    """Health endpoint configuration."""

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8081


class Config(BaseModel):
    """Root configuration."""

    version: int = 1
    store: StoreConfig = Field(default_factory=StoreConfig)
    controller: ControllerConfig = Field(default_factory=ControllerConfig)
    control_plane: ControlPlaneConfig = Field(default_factory=ControlPlaneConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)

    @field_validator("version")
    @classmethod
    def _validate_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError(f"Unsupported config version: {value}")
        return value
