"""Links a child deployment to the WorkerCluster that controls it."""

from __future__ import annotations

from worker_operator.errors import AlreadyOwnedError, OwnershipError
from worker_operator.models.meta import OwnerReference
from worker_operator.models.workercluster import WorkerCluster
from worker_operator.models.workload import Deployment


def set_controller_reference(owner: WorkerCluster, child: Deployment) -> None:
    """Stamp `child` with a controller owner reference to `owner`, in place.

    The store uses the reference to delete the deployment when its
    WorkerCluster goes away. Re-stamping with the same owner is a no-op.

    Raises:
        OwnershipError: owner has no uid yet, or lives in another namespace
        AlreadyOwnedError: child is controlled by a different object
    """
    if not owner.metadata.uid:
        raise OwnershipError(f"{owner.kind} {owner.key} has no uid; it must be read from the store")
    if owner.metadata.namespace != child.metadata.namespace:
        raise OwnershipError(
            f"cross-namespace owner references are not allowed: "
            f"{owner.kind} {owner.key} -> {child.kind} {child.key}"
        )

    reference = OwnerReference(
        api_version=owner.api_version,
        kind=owner.kind,
        name=owner.metadata.name,
        uid=owner.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )

    current = child.metadata.controller_reference()
    if current is not None and current.uid != reference.uid:
        raise AlreadyOwnedError(
            child=f"{child.kind} {child.key}",
            current_owner=f"{current.kind} {current.name}",
        )

    child.metadata.owner_references = [
        ref for ref in child.metadata.owner_references if ref.uid != reference.uid
    ] + [reference]


def is_controlled_by(child: Deployment, owner: WorkerCluster) -> bool:
    current = child.metadata.controller_reference()
    return current is not None and current.uid == owner.metadata.uid
