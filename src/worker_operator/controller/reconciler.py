"""WorkerCluster reconciliation state machine."""

from __future__ import annotations

import logging
from typing import cast

from worker_operator.controller.builder import TEMPLATE_HASH_ANNOTATION, build_deployment
from worker_operator.controller.models import ReconcileRequest, ReconcileResult
from worker_operator.controller.observation import ChildObservationReader
from worker_operator.controller.ownership import is_controlled_by, set_controller_reference
from worker_operator.controller.status import aggregate_status
from worker_operator.errors import AlreadyExistsError, NotFoundError
from worker_operator.interfaces import FixedPoolSizeReader, ObjectStore, PoolSizeReader
from worker_operator.models.config import ControlPlaneConfig
from worker_operator.models.enums import Kind, SpecDriftPolicy
from worker_operator.models.workercluster import WorkerCluster
from worker_operator.models.workload import Deployment

logger = logging.getLogger(__name__)


class WorkerClusterReconciler:
    """Converges one WorkerCluster's deployment and publishes its status.

    A pass is a straight sequence of store calls with no internal retries:
    any store error other than an expected not-found propagates unchanged so
    the caller can back off and reconcile the same key again. Passes for the
    same key must be serialized by the caller.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        control_plane: ControlPlaneConfig | None = None,
        pool_size_reader: PoolSizeReader | None = None,
        drift_policy: SpecDriftPolicy = SpecDriftPolicy.IGNORE,
    ) -> None:
        self._store = store
        self._reader = ChildObservationReader(store)
        self._control_plane = control_plane or ControlPlaneConfig()
        self._pool_sizes = pool_size_reader or FixedPoolSizeReader()
        self._drift_policy = drift_policy

    async def reconcile(self, request: ReconcileRequest) -> ReconcileResult:
        key = request.key
        logger.info("Reconciling WorkerCluster %s", key)

        try:
            cluster = cast(WorkerCluster, await self._store.get(Kind.WORKER_CLUSTER, key))
        except NotFoundError:
            # Deleted after the pass was triggered; the store reclaims owned children.
            logger.debug("WorkerCluster %s not found, nothing to do", key)
            return ReconcileResult()

        desired = build_deployment(cluster, self._control_plane)
        set_controller_reference(cluster, desired)

        observed = await self._ensure_deployment(cluster, desired)

        pods = await self._reader.list_pods(cluster.metadata.namespace, observed.spec.selector)
        status = aggregate_status(pods, self._pool_sizes)

        cluster.status = status
        await self._store.update_status(cluster)
        logger.debug(
            "Updated WorkerCluster %s status with %d workers", key, len(status.worker_statuses)
        )
        return ReconcileResult()

    async def _ensure_deployment(self, cluster: WorkerCluster, desired: Deployment) -> Deployment:
        found = await self._reader.get_deployment(desired.key)
        if found is None:
            logger.info("Creating a new Deployment %s", desired.key)
            try:
                return cast(Deployment, await self._store.create(desired))
            except AlreadyExistsError:
                # Lost a create race; whoever won created the same deterministic child.
                found = await self._reader.get_deployment(desired.key)
                if found is None:
                    raise
                logger.info("Deployment %s created concurrently, adopting it", desired.key)
                return found

        if self._drift_policy is SpecDriftPolicy.HASH:
            return await self._converge_drift(cluster, found, desired)
        return found

    async def _converge_drift(
        self, cluster: WorkerCluster, found: Deployment, desired: Deployment
    ) -> Deployment:
        desired_hash = desired.metadata.annotations[TEMPLATE_HASH_ANNOTATION]
        if found.metadata.annotations.get(TEMPLATE_HASH_ANNOTATION) == desired_hash:
            return found
        if not is_controlled_by(found, cluster):
            logger.warning(
                "Deployment %s is not controlled by WorkerCluster %s; leaving it unchanged",
                found.key,
                cluster.key,
            )
            return found
        if found.spec.selector != desired.spec.selector:
            # The selector is immutable, and new template labels must still match it.
            logger.warning(
                "WorkerCluster %s selector changed; Deployment %s must be recreated to roll out",
                cluster.key,
                found.key,
            )
            return found

        # Only operator-owned fields are replaced.
        updated = found.model_copy(deep=True)
        updated.metadata.labels = dict(desired.metadata.labels)
        updated.metadata.annotations = {
            **found.metadata.annotations,
            TEMPLATE_HASH_ANNOTATION: desired_hash,
        }
        updated.spec.template = desired.spec.template.model_copy(deep=True)
        updated.spec.strategy = desired.spec.strategy.model_copy(deep=True)

        logger.info("Updating drifted Deployment %s to template %s", found.key, desired_hash)
        return cast(Deployment, await self._store.update(updated))
