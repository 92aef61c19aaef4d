"""Health check server."""

from worker_operator.health.server import HealthServer

__all__ = ["HealthServer"]
