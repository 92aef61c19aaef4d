"""Builds the canonical child deployment for a WorkerCluster.

Everything here is pure: no I/O, and the same cluster always yields an equal
deployment.
"""

from __future__ import annotations

import hashlib
import json

from worker_operator.errors import TemplatePreconditionError
from worker_operator.models.config import ControlPlaneConfig
from worker_operator.models.meta import ObjectMeta
from worker_operator.models.workercluster import WorkerCluster
from worker_operator.models.workload import (
    Container,
    Deployment,
    DeploymentSpec,
    DeploymentStrategy,
    EnvVar,
    RollingUpdateDeployment,
)

REMOTE_CONTROLLER_ADDR_ENV = "TRAVIS_WORKER_REMOTE_CONTROLLER_ADDR"
REMOTE_CONTROLLER_AUTH_ENV = "TRAVIS_WORKER_REMOTE_CONTROLLER_AUTH"
POOL_SIZE_ENV = "TRAVIS_WORKER_POOL_SIZE"

TEMPLATE_HASH_ANNOTATION = "travisci.com/template-hash"

ROLLOUT_MAX_UNAVAILABLE = 0
ROLLOUT_MAX_SURGE = 1


def build_deployment(
    cluster: WorkerCluster, control_plane: ControlPlaneConfig | None = None
) -> Deployment:
    """Return the deployment that should run `cluster`'s workers.

    The deployment shares the cluster's name, namespace and labels, uses the
    cluster's selector, and rolls out one surge pod at a time without ever
    taking a ready pod down first.

    Raises:
        TemplatePreconditionError: the template declares no containers
    """
    control_plane = control_plane or ControlPlaneConfig()
    template = cluster.spec.template.model_copy(deep=True)
    if not template.spec.containers:
        raise TemplatePreconditionError(
            f"WorkerCluster {cluster.key} template must declare at least one container"
        )
    template.spec.containers[0] = configure_container(template.spec.containers[0], control_plane)

    spec = DeploymentSpec(
        selector=cluster.spec.selector.model_copy(deep=True),
        template=template,
        strategy=DeploymentStrategy(
            type="RollingUpdate",
            rolling_update=RollingUpdateDeployment(
                max_unavailable=ROLLOUT_MAX_UNAVAILABLE,
                max_surge=ROLLOUT_MAX_SURGE,
            ),
        ),
    )
    labels = dict(cluster.metadata.labels)
    metadata = ObjectMeta(
        name=cluster.metadata.name,
        namespace=cluster.metadata.namespace,
        labels=labels,
        annotations={TEMPLATE_HASH_ANNOTATION: template_hash(labels, spec)},
    )
    return Deployment(metadata=metadata, spec=spec)


def configure_container(container: Container, control_plane: ControlPlaneConfig) -> Container:
    """Return a copy of `container` wired for remote pool-size control.

    The worker starts with no processors and waits for the operator to assign
    a pool size through the remote controller API.
    """
    managed = [
        EnvVar(name=REMOTE_CONTROLLER_ADDR_ENV, value=control_plane.addr),
        EnvVar(name=REMOTE_CONTROLLER_AUTH_ENV, value=control_plane.auth),
        EnvVar(name=POOL_SIZE_ENV, value="0"),
    ]
    managed_names = {env.name for env in managed}

    configured = container.model_copy(deep=True)
    configured.env = [env for env in configured.env if env.name not in managed_names] + managed
    return configured


def template_hash(labels: dict[str, str], spec: DeploymentSpec) -> str:
    """Return a short, stable digest of the operator-owned deployment fields."""
    payload = {"labels": labels, "spec": spec.to_manifest()}
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:16]
