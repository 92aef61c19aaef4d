"""Main application that wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import TYPE_CHECKING

from worker_operator.config import load_config, resolve_control_plane
from worker_operator.controller import WorkerClusterReconciler
from worker_operator.health import HealthServer
from worker_operator.runtime import OperatorRuntime, ReconcileDispatcher
from worker_operator.store.kubernetes import KubernetesObjectStore, create_api_client

if TYPE_CHECKING:
    from worker_operator.models.config import Config

logger = logging.getLogger(__name__)


class Application:
    """Runs the WorkerCluster operator.

    Handles component creation, lifecycle, and graceful shutdown.
    """

    def __init__(self, config_path: Path) -> None:
        """Initialize application with config file path.

        Args:
            config_path: Path to YAML config file
        """
        self._config_path = config_path
        self._config: Config | None = None

        # Components (created in _create_components)
        self._store: KubernetesObjectStore | None = None
        self._runtime: OperatorRuntime | None = None
        self._health_server: HealthServer | None = None

        self._shutdown_started = False

    async def run(self) -> None:
        """Run the operator until a shutdown signal arrives."""
        logger.info("Starting worker operator...")

        self._config = load_config(self._config_path)
        logger.info("Config loaded from %s", self._config_path)

        await self._create_components()
        self._setup_signal_handlers()

        if self._health_server:
            await self._health_server.start()

        logger.info("Operator started. Watching WorkerClusters...")
        try:
            # kopf replaces the SIGINT/SIGTERM handlers once it starts; both stop it.
            await self.runtime.run()
        finally:
            await self.shutdown()

    async def _create_components(self) -> None:
        """Create all components based on config."""
        config = self._require_config()
        control_plane = resolve_control_plane(config.control_plane)

        api_client = await create_api_client(config.store.kubernetes)
        self._store = KubernetesObjectStore(api_client, config.store.resource)
        reconciler = WorkerClusterReconciler(
            self._store,
            control_plane=control_plane,
            drift_policy=config.controller.drift_policy,
        )
        self._runtime = OperatorRuntime(
            ReconcileDispatcher(reconciler, config=config.controller),
            resource=config.store.resource,
            config=config.controller,
            namespace=config.store.kubernetes.namespace,
            credentials=None if config.store.kubernetes.in_cluster else api_client.configuration,
        )

        if config.health.enabled:
            self._health_server = HealthServer(host=config.health.host, port=config.health.port)
            self._health_server.set_runtime(self._runtime)

        logger.info("All components created")

    def _require_config(self) -> Config:
        if self._config is None:
            raise RuntimeError("Config not loaded")
        return self._config

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_signal, sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        if self._shutdown_started:
            logger.warning("Shutdown already in progress, ignoring signal")
            return

        logger.info("Received signal %s, initiating shutdown...", sig.name)
        self._shutdown_started = True
        if self._runtime:
            self._runtime.stop()

    async def shutdown(self) -> None:
        """Graceful shutdown of all components."""
        logger.info("Shutting down operator...")

        if self._runtime:
            self._runtime.stop()

        if self._health_server:
            await self._health_server.stop()

        if self._store:
            await self._store.shutdown()

        logger.info("Operator shutdown complete")

    @property
    def runtime(self) -> OperatorRuntime:
        if self._runtime is None:
            raise RuntimeError("Operator runtime not initialized")
        return self._runtime
