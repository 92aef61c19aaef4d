"""Object identity and metadata shared by every API object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for wire-compatible API models.

    Python attributes are snake_case; the serialized form is camelCase.
    Unknown fields are kept so opaque parts of a manifest survive a round trip.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_manifest(self) -> dict[str, Any]:
        """Serialize to a camelCase mapping suitable for the API server."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True, slots=True)
class ObjectKey:
    """Namespace-qualified object identity."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class OwnerReference(ApiModel):
    """Back-reference from a child object to the object that owns it."""

    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool | None = None
    block_owner_deletion: bool | None = None


class ObjectMeta(ApiModel):
    """Standard object metadata."""

    name: str
    namespace: str = "default"
    uid: str | None = None
    resource_version: str | None = None
    generation: int | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(default_factory=list)

    def controller_reference(self) -> OwnerReference | None:
        """Return the owner reference flagged as controller, if any."""
        for ref in self.owner_references:
            if ref.controller:
                return ref
        return None


class LabelSelector(ApiModel):
    """Equality-based label selector."""

    match_labels: dict[str, str] = Field(default_factory=dict)

    def matches(self, labels: dict[str, str]) -> bool:
        return all(labels.get(key) == value for key, value in self.match_labels.items())

    def to_selector_string(self) -> str:
        """Render as a `key=value,...` selector, keys sorted."""
        return ",".join(f"{key}={value}" for key, value in sorted(self.match_labels.items()))


class ApiObject(ApiModel):
    """Top-level object stored under a namespace-qualified key."""

    api_version: str
    kind: str
    metadata: ObjectMeta

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(namespace=self.metadata.namespace, name=self.metadata.name)
