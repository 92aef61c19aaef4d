"""Worker operator: reconciles WorkerCluster resources into worker Deployments."""

__version__ = "0.1.0"

# Export commonly used types
from worker_operator.controller import ReconcileRequest, ReconcileResult, WorkerClusterReconciler
from worker_operator.errors import StoreError
from worker_operator.models.meta import ObjectKey
from worker_operator.models.workercluster import WorkerCluster, WorkerClusterStatus, WorkerStatus
from worker_operator.models.workload import Deployment, Pod

__all__ = [
    "Deployment",
    "ObjectKey",
    "Pod",
    "ReconcileRequest",
    "ReconcileResult",
    "StoreError",
    "WorkerCluster",
    "WorkerClusterReconciler",
    "WorkerClusterStatus",
    "WorkerStatus",
    "__version__",
]
