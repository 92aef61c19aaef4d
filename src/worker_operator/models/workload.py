"""Workload models: containers, pod templates, deployments and pods."""

from __future__ import annotations

from pydantic import Field

from worker_operator.models.enums import Kind
from worker_operator.models.meta import ApiModel, ApiObject, LabelSelector


class EnvVar(ApiModel):
    """Container environment entry (`valueFrom` and friends pass through as extras)."""

    name: str
    value: str | None = None


class Container(ApiModel):
    """Worker container; only `env` is interpreted by the operator."""

    name: str
    image: str | None = None
    env: list[EnvVar] = Field(default_factory=list)


class PodSpec(ApiModel):
    containers: list[Container] = Field(default_factory=list)


class TemplateMetadata(ApiModel):
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class PodTemplateSpec(ApiModel):
    """Pod template embedded in a WorkerCluster and copied into its deployment."""

    metadata: TemplateMetadata = Field(default_factory=TemplateMetadata)
    spec: PodSpec = Field(default_factory=PodSpec)


class RollingUpdateDeployment(ApiModel):
    max_unavailable: int | str | None = None
    max_surge: int | str | None = None


class DeploymentStrategy(ApiModel):
    type: str = "RollingUpdate"
    rolling_update: RollingUpdateDeployment | None = None


class DeploymentSpec(ApiModel):
    selector: LabelSelector
    template: PodTemplateSpec
    strategy: DeploymentStrategy = Field(default_factory=DeploymentStrategy)
    replicas: int | None = None


class Deployment(ApiObject):
    """Child workload managed on behalf of a WorkerCluster."""

    api_version: str = "apps/v1"
    kind: str = Kind.DEPLOYMENT.value
    spec: DeploymentSpec


class Pod(ApiObject):
    """Observed worker instance; read-only to the operator."""

    api_version: str = "v1"
    kind: str = Kind.POD.value
    spec: PodSpec | None = None
