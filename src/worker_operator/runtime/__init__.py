"""Hosting runtime that delivers reconcile requests to the controller."""

from worker_operator.runtime.dispatcher import ReconcileDispatcher
from worker_operator.runtime.models import RuntimeStatusSnapshot
from worker_operator.runtime.operator import OperatorRuntime
from worker_operator.runtime.routing import owner_cluster_key

__all__ = ["OperatorRuntime", "ReconcileDispatcher", "RuntimeStatusSnapshot", "owner_cluster_key"]
