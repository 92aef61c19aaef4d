"""Reconcile request/result models."""

from __future__ import annotations

from dataclasses import dataclass

from worker_operator.models.meta import ObjectKey


@dataclass(frozen=True, slots=True)
class ReconcileRequest:
    """Asks for one reconciliation pass of the WorkerCluster at `key`."""

    key: ObjectKey


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of a successful pass.

    `requeue_after` asks the caller to reconcile the same key again after the
    given number of seconds; None leaves re-invocation to watch events.
    """

    requeue_after: float | None = None
