"""Runtime status models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class RuntimeStatusSnapshot:
    """Snapshot of operator runtime status for the health endpoint."""

    running: bool
    ready: bool
    workers: int
    in_flight: int
    reconciles_succeeded: int
    reconciles_failed: int
    last_error: str | None
    last_error_at: datetime | None
