"""Kubernetes API implementation of ObjectStore."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any

import aiohttp
from kubernetes_asyncio import client
from kubernetes_asyncio import config as k8s_config
from kubernetes_asyncio.client import ApiException

from worker_operator.errors import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
    TransientStoreError,
)
from worker_operator.interfaces import ObjectStore
from worker_operator.models.config import KubernetesStoreConfig, ResourceConfig
from worker_operator.models.enums import Kind
from worker_operator.models.meta import ApiObject, LabelSelector, ObjectKey
from worker_operator.models.registry import decode_object

_HTTP_NOT_FOUND = 404
_HTTP_CONFLICT = 409


async def create_api_client(config: KubernetesStoreConfig) -> client.ApiClient:
    """Load in-cluster or kubeconfig credentials and return an API client."""
    if config.in_cluster:
        k8s_config.load_incluster_config()
    else:
        await k8s_config.load_kube_config(config_file=config.kubeconfig, context=config.context)
    return client.ApiClient()


class KubernetesObjectStore(ObjectStore):
    """ObjectStore backed by the Kubernetes API server.

    WorkerClusters are custom objects; deployments and pods use the typed
    apps/v1 and core/v1 APIs. Typed responses are converted back to camelCase
    manifests before validation so every kind decodes the same way.
    """

    def __init__(
        self, api_client: client.ApiClient, resource: ResourceConfig | None = None
    ) -> None:
        self._api_client = api_client
        self._resource = resource or ResourceConfig()
        self._custom = client.CustomObjectsApi(api_client)
        self._apps = client.AppsV1Api(api_client)
        self._core = client.CoreV1Api(api_client)

    async def get(self, kind: Kind, key: ObjectKey) -> ApiObject:
        match kind:
            case Kind.WORKER_CLUSTER:
                call = self._custom.get_namespaced_custom_object(
                    name=key.name, namespace=key.namespace, **self._crd_args()
                )
            case Kind.DEPLOYMENT:
                call = self._apps.read_namespaced_deployment(name=key.name, namespace=key.namespace)
            case Kind.POD:
                call = self._core.read_namespaced_pod(name=key.name, namespace=key.namespace)
        raw = await self._call(kind, key, call)
        return decode_object(kind, self._to_manifest(raw))

    async def create(self, obj: ApiObject) -> ApiObject:
        kind = Kind(obj.kind)
        body = obj.to_manifest()
        namespace = obj.metadata.namespace
        match kind:
            case Kind.WORKER_CLUSTER:
                call = self._custom.create_namespaced_custom_object(
                    namespace=namespace, body=body, **self._crd_args()
                )
            case Kind.DEPLOYMENT:
                call = self._apps.create_namespaced_deployment(namespace=namespace, body=body)
            case Kind.POD:
                call = self._core.create_namespaced_pod(namespace=namespace, body=body)
        raw = await self._call(kind, obj.key, call, on_conflict=AlreadyExistsError)
        return decode_object(kind, self._to_manifest(raw))

    async def list(
        self, kind: Kind, namespace: str, selector: LabelSelector
    ) -> list[ApiObject]:
        kwargs: dict[str, Any] = {"namespace": namespace}
        label_selector = selector.to_selector_string()
        if label_selector:
            kwargs["label_selector"] = label_selector
        match kind:
            case Kind.WORKER_CLUSTER:
                call = self._custom.list_namespaced_custom_object(**kwargs, **self._crd_args())
            case Kind.DEPLOYMENT:
                call = self._apps.list_namespaced_deployment(**kwargs)
            case Kind.POD:
                call = self._core.list_namespaced_pod(**kwargs)
        raw = self._to_manifest(await self._call(kind, None, call))
        return [decode_object(kind, item) for item in raw.get("items") or []]

    async def update(self, obj: ApiObject) -> ApiObject:
        kind = Kind(obj.kind)
        key = obj.key
        body = obj.to_manifest()
        match kind:
            case Kind.WORKER_CLUSTER:
                call = self._custom.replace_namespaced_custom_object(
                    name=key.name, namespace=key.namespace, body=body, **self._crd_args()
                )
            case Kind.DEPLOYMENT:
                call = self._apps.replace_namespaced_deployment(
                    name=key.name, namespace=key.namespace, body=body
                )
            case Kind.POD:
                call = self._core.replace_namespaced_pod(
                    name=key.name, namespace=key.namespace, body=body
                )
        raw = await self._call(kind, key, call)
        return decode_object(kind, self._to_manifest(raw))

    async def update_status(self, obj: ApiObject) -> ApiObject:
        kind = Kind(obj.kind)
        key = obj.key
        body = obj.to_manifest()
        match kind:
            case Kind.WORKER_CLUSTER:
                call = self._custom.replace_namespaced_custom_object_status(
                    name=key.name, namespace=key.namespace, body=body, **self._crd_args()
                )
            case Kind.DEPLOYMENT:
                call = self._apps.replace_namespaced_deployment_status(
                    name=key.name, namespace=key.namespace, body=body
                )
            case Kind.POD:
                call = self._core.replace_namespaced_pod_status(
                    name=key.name, namespace=key.namespace, body=body
                )
        raw = await self._call(kind, key, call)
        return decode_object(kind, self._to_manifest(raw))

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        await self._api_client.close()

    def _crd_args(self) -> dict[str, str]:
        return {
            "group": self._resource.group,
            "version": self._resource.version,
            "plural": self._resource.plural,
        }

    def _to_manifest(self, raw: Any) -> dict[str, Any]:
        if isinstance(raw, dict):
            return raw
        return self._api_client.sanitize_for_serialization(raw)

    async def _call(
        self,
        kind: Kind,
        key: ObjectKey | None,
        call: Awaitable[Any],
        *,
        on_conflict: type[AlreadyExistsError] | type[ConflictError] = ConflictError,
    ) -> Any:
        try:
            return await call
        except ApiException as exc:
            raise translate_api_exception(exc, kind, key, on_conflict=on_conflict) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransientStoreError(
                f"Kubernetes API unreachable for {kind} {key or ''}".rstrip(),
                kind=kind,
                key=key,
                cause=exc,
            ) from exc


def translate_api_exception(
    exc: ApiException,
    kind: Kind,
    key: ObjectKey | None,
    *,
    on_conflict: type[AlreadyExistsError] | type[ConflictError] = ConflictError,
) -> StoreError:
    """Map an API error status onto the store error taxonomy."""
    if key is not None and exc.status == _HTTP_NOT_FOUND:
        return NotFoundError(kind, key, cause=exc)
    if key is not None and exc.status == _HTTP_CONFLICT:
        return on_conflict(kind, key, cause=exc)
    return TransientStoreError(
        f"Kubernetes API error for {kind} {key or ''}: {exc.status} {exc.reason}",
        kind=kind,
        key=key,
        cause=exc,
    )
