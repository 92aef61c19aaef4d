"""Centralized enums for object kinds and controller policies."""

from enum import StrEnum


class Kind(StrEnum):
    """Object kinds the operator reads or writes."""

    WORKER_CLUSTER = "WorkerCluster"
    DEPLOYMENT = "Deployment"
    POD = "Pod"


class SpecDriftPolicy(StrEnum):
    """How an existing child deployment is treated when its template drifts.

    IGNORE adopts the existing deployment as-is. HASH rewrites the
    operator-owned fields when the stored template hash annotation differs
    from the freshly built one.
    """

    IGNORE = "ignore"
    HASH = "hash"
