"""HTTP health check endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

if TYPE_CHECKING:
    from worker_operator.runtime.operator import OperatorRuntime

logger = logging.getLogger(__name__)


class HealthServer:
    """HTTP server for liveness checks.

    Provides /health returning operator runtime status.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8081,
    ) -> None:
        """Initialize health server.

        Args:
            host: Host to bind to
            port: Port to bind to
        """
        self.host = host
        self.port = port

        self._runtime: OperatorRuntime | None = None

        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

        logger.info("HealthServer initialized: %s:%d", host, port)

    def set_runtime(self, runtime: OperatorRuntime | None) -> None:
        self._runtime = runtime

    async def start(self) -> None:
        """Start HTTP server."""
        self._app = web.Application()
        self._app.router.add_get("/health", self._health_handler)

        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        logger.info("HealthServer started: http://%s:%d/health", self.host, self.port)

    async def stop(self) -> None:
        """Stop HTTP server."""
        if self._runner:
            await self._runner.cleanup()

        self._app = None
        self._runner = None
        self._site = None

        logger.info("HealthServer stopped")

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Handle GET /health request."""
        health_data = self.compute_health()
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        return web.json_response(health_data, status=status_code)

    def compute_health(self) -> dict[str, Any]:
        """Compute health status and return JSON data.

        Returns:
            Health data dict with status, checks and counters
        """
        if self._runtime is None:
            return {"status": "unhealthy", "checks": {"operator": False, "ready": False}}

        snapshot = self._runtime.get_status()
        checks = {
            "operator": snapshot.running,
            "ready": snapshot.ready,
        }
        return {
            "status": self._compute_status(checks),
            "checks": checks,
            "workers": snapshot.workers,
            "in_flight": snapshot.in_flight,
            "reconciles_succeeded": snapshot.reconciles_succeeded,
            "reconciles_failed": snapshot.reconciles_failed,
            "last_error": snapshot.last_error,
            "last_error_at": (
                snapshot.last_error_at.isoformat() if snapshot.last_error_at else None
            ),
        }

    def _compute_status(self, checks: dict[str, bool]) -> str:
        """Compute overall health status.

        Returns:
            "healthy" or "unhealthy"
        """
        if not all(checks.values()):
            return "unhealthy"
        return "healthy"
