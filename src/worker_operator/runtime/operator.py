"""Embedded kopf operator hosting the WorkerCluster handlers."""

from __future__ import annotations

import asyncio
import logging

import kopf
from kubernetes_asyncio.client import Configuration

from worker_operator.models.config import ControllerConfig, ResourceConfig
from worker_operator.runtime.dispatcher import ReconcileDispatcher
from worker_operator.runtime.handlers import register_handlers
from worker_operator.runtime.models import RuntimeStatusSnapshot

logger = logging.getLogger(__name__)


class OperatorRuntime:
    """Runs kopf in-process until stopped.

    kopf owns watching, per-object serialization and retry scheduling; the
    handlers delegate every pass to the dispatcher. Handler progress is kept in
    annotations under the WorkerCluster API group, since the reconciler
    replaces the whole status on every pass.
    """

    def __init__(
        self,
        dispatcher: ReconcileDispatcher,
        *,
        resource: ResourceConfig | None = None,
        config: ControllerConfig | None = None,
        namespace: str | None = None,
        credentials: Configuration | None = None,
    ) -> None:
        """Initialize the runtime.

        Args:
            dispatcher: Runs reconcile passes for the handlers
            resource: WorkerCluster custom resource coordinates
            config: Worker limit and resync interval
            namespace: Namespace to watch, or None for the whole cluster
            credentials: Loaded API credentials; None logs in with the pod's service account
        """
        self._dispatcher = dispatcher
        self._resource = resource or ResourceConfig()
        self._config = config or ControllerConfig()
        self._namespace = namespace

        self._registry = kopf.OperatorRegistry()
        register_handlers(
            self._registry, self._resource, resync_interval_s=self._config.resync_interval_s
        )

        self._settings = kopf.OperatorSettings()
        self._settings.batching.worker_limit = self._config.workers
        self._settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
            prefix=self._resource.group
        )
        self._settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
            prefix=self._resource.group
        )

        self._memo = kopf.Memo(
            dispatcher=dispatcher,
            resource_group=self._resource.group,
            credentials=credentials,
        )
        self._stop_flag = asyncio.Event()
        self._ready_flag = asyncio.Event()
        self._running = False

    @property
    def registry(self) -> kopf.OperatorRegistry:
        return self._registry

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Run the operator until `stop()` is called or kopf exits."""
        if self._running:
            logger.warning("Operator runtime already running")
            return

        self._running = True
        logger.info(
            "Starting kopf for %s/%s in %s",
            self._resource.api_version,
            self._resource.plural,
            self._namespace or "all namespaces",
        )
        try:
            await kopf.operator(
                registry=self._registry,
                settings=self._settings,
                memo=self._memo,
                standalone=True,
                clusterwide=self._namespace is None,
                namespaces=[self._namespace] if self._namespace else [],
                stop_flag=self._stop_flag,
                ready_flag=self._ready_flag,
            )
        finally:
            self._running = False
            self._ready_flag.clear()
            logger.info("kopf stopped")

    def stop(self) -> None:
        self._stop_flag.set()

    def get_status(self) -> RuntimeStatusSnapshot:
        return RuntimeStatusSnapshot(
            running=self._running,
            ready=self._ready_flag.is_set(),
            workers=self._config.workers,
            in_flight=self._dispatcher.in_flight,
            reconciles_succeeded=self._dispatcher.reconciles_succeeded,
            reconciles_failed=self._dispatcher.reconciles_failed,
            last_error=self._dispatcher.last_error,
            last_error_at=self._dispatcher.last_error_at,
        )
