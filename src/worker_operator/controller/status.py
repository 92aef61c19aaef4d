"""Aggregates observed worker pods into a WorkerCluster status."""

from __future__ import annotations

from collections.abc import Iterable

from worker_operator.interfaces import FixedPoolSizeReader, PoolSizeReader
from worker_operator.models.workercluster import WorkerClusterStatus, WorkerStatus
from worker_operator.models.workload import Pod


def aggregate_status(
    pods: Iterable[Pod], reader: PoolSizeReader | None = None
) -> WorkerClusterStatus:
    """Build a fresh status with one entry per pod, in input order.

    The result never carries entries from a previous status, and is an empty
    list (not None) when there are no pods.
    """
    reader = reader or FixedPoolSizeReader()
    statuses: list[WorkerStatus] = []
    for pod in pods:
        sizes = reader.pool_sizes(pod)
        statuses.append(
            WorkerStatus(
                name=pod.metadata.name,
                current_pool_size=sizes.current,
                expected_pool_size=sizes.expected,
                requested_pool_size=sizes.requested,
            )
        )
    return WorkerClusterStatus(worker_statuses=statuses)
