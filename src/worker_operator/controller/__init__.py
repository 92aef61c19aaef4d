"""Reconciliation engine for WorkerCluster resources."""

from worker_operator.controller.builder import build_deployment, configure_container
from worker_operator.controller.models import ReconcileRequest, ReconcileResult
from worker_operator.controller.observation import ChildObservationReader
from worker_operator.controller.ownership import set_controller_reference
from worker_operator.controller.reconciler import WorkerClusterReconciler
from worker_operator.controller.status import aggregate_status

__all__ = [
    "ChildObservationReader",
    "ReconcileRequest",
    "ReconcileResult",
    "WorkerClusterReconciler",
    "aggregate_status",
    "build_deployment",
    "configure_container",
    "set_controller_reference",
]
