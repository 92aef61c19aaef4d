"""Interface definitions for the operator's collaborators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from worker_operator.models.enums import Kind
    from worker_operator.models.meta import ApiObject, LabelSelector, ObjectKey
    from worker_operator.models.workload import Pod


class Shutdownable(ABC):
    """Async shutdown interface for managed components."""

    @abstractmethod
    async def shutdown(self, timeout: float | None = None) -> None:
        """Release resources and stop background work."""
        raise NotImplementedError


class ObjectStore(Shutdownable, ABC):
    """Typed CRUD over API objects keyed by namespace and name.

    Implementations return instances of the model registered for the
    requested kind (see `worker_operator.models.registry.MODEL_BY_KIND`).
    """

    @abstractmethod
    async def get(self, kind: Kind, key: ObjectKey) -> ApiObject:
        """Fetch one object.

        Raises:
            NotFoundError: the object does not exist
            TransientStoreError: the store could not be reached
        """
        raise NotImplementedError

    @abstractmethod
    async def create(self, obj: ApiObject) -> ApiObject:
        """Create an object and return the stored version.

        Raises:
            AlreadyExistsError: an object with the same key exists
            TransientStoreError: the store could not be reached
        """
        raise NotImplementedError

    @abstractmethod
    async def list(
        self, kind: Kind, namespace: str, selector: LabelSelector
    ) -> list[ApiObject]:
        """List objects of `kind` in `namespace` whose labels match `selector`."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, obj: ApiObject) -> ApiObject:
        """Replace an object's spec and metadata (status is left untouched).

        Raises:
            ConflictError: `obj.metadata.resource_version` is stale
            NotFoundError: the object no longer exists
        """
        raise NotImplementedError

    @abstractmethod
    async def update_status(self, obj: ApiObject) -> ApiObject:
        """Replace only the status sub-object.

        Must fail rather than overwrite a concurrent write.

        Raises:
            ConflictError: `obj.metadata.resource_version` is stale
            NotFoundError: the object no longer exists
        """
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class PoolSizes:
    """Pool-size counters reported for one worker pod."""

    current: int
    expected: int
    requested: int


class PoolSizeReader(ABC):
    """Reports how many job processors a worker pod runs."""

    @abstractmethod
    def pool_sizes(self, pod: Pod) -> PoolSizes:
        raise NotImplementedError


class FixedPoolSizeReader(PoolSizeReader):
    """Reports the same counters for every pod.

    Stands in until the operator queries the worker's remote controller API.
    """

    def __init__(self, value: int = 1) -> None:
        self._sizes = PoolSizes(current=value, expected=value, requested=value)

    def pool_sizes(self, pod: Pod) -> PoolSizes:
        _ = pod
        return self._sizes
