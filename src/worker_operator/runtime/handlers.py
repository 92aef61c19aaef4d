"""kopf handlers that turn cluster events into reconcile passes.

Handlers are registered on an explicit `kopf.OperatorRegistry` so the
WorkerCluster group, version and plural come from config. They reach the
dispatcher through the operator memo (`memo.dispatcher`).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import kopf
from kubernetes_asyncio.client import Configuration

from worker_operator.models.config import ResourceConfig
from worker_operator.models.meta import ObjectKey
from worker_operator.runtime.routing import owner_cluster_key

logger = logging.getLogger(__name__)

_TOKEN_KEYS = ("authorization", "BearerToken")


def register_handlers(
    registry: kopf.OperatorRegistry,
    resource: ResourceConfig,
    *,
    resync_interval_s: float,
) -> None:
    """Register every operator handler on `registry`."""
    group, version, plural = resource.group, resource.version, resource.plural

    kopf.on.login(registry=registry)(login)

    kopf.on.resume(group, version, plural, registry=registry)(worker_cluster_changed)
    kopf.on.create(group, version, plural, registry=registry)(worker_cluster_changed)
    kopf.on.update(group, version, plural, registry=registry)(worker_cluster_changed)
    kopf.timer(
        group,
        version,
        plural,
        registry=registry,
        interval=resync_interval_s,
        initial_delay=resync_interval_s,
    )(worker_cluster_resync)
    kopf.on.event(group, version, plural, registry=registry)(worker_cluster_event)

    kopf.on.event("apps", "v1", "deployments", registry=registry)(deployment_event)


async def worker_cluster_changed(
    name: str, namespace: str, memo: kopf.Memo, retry: int = 0, **_: Any
) -> None:
    """Reconcile a WorkerCluster that was created, changed, or found at startup."""
    await memo.dispatcher.dispatch(ObjectKey(namespace=namespace, name=name), retry=retry)


async def worker_cluster_resync(
    name: str, namespace: str, memo: kopf.Memo, retry: int = 0, **_: Any
) -> None:
    await memo.dispatcher.dispatch(ObjectKey(namespace=namespace, name=name), retry=retry)


async def worker_cluster_event(
    event: Mapping[str, Any], name: str, namespace: str, memo: kopf.Memo, **_: Any
) -> None:
    if event.get("type") == "DELETED":
        memo.dispatcher.forget(ObjectKey(namespace=namespace, name=name))


async def deployment_event(
    event: Mapping[str, Any], meta: Mapping[str, Any], memo: kopf.Memo, **_: Any
) -> None:
    """Reconcile the WorkerCluster controlling a changed or deleted Deployment."""
    key = owner_cluster_key(meta, group=memo.resource_group)
    if key is None:
        return
    logger.debug(
        "Deployment %s event %s wakes WorkerCluster %s", meta.get("name"), event.get("type"), key
    )
    await memo.dispatcher.dispatch(key)


def login(memo: kopf.Memo, logger: logging.Logger, **_: Any) -> kopf.ConnectionInfo | None:
    """Authenticate kopf with the credentials the object store loaded."""
    credentials: Configuration | None = memo.credentials
    if credentials is None:
        return kopf.login_with_service_account(logger=logger)
    return connection_info(credentials)


def connection_info(configuration: Configuration) -> kopf.ConnectionInfo:
    """Translate a loaded kubernetes_asyncio configuration into kopf credentials."""
    scheme: str | None = None
    token: str | None = None
    for token_key in _TOKEN_KEYS:
        header = configuration.api_key.get(token_key)
        if not header:
            continue
        prefix = configuration.api_key_prefix.get(token_key)
        first, _, rest = header.partition(" ")
        if rest:
            scheme, token = first, rest
        else:
            scheme, token = prefix or "Bearer", header
        break

    return kopf.ConnectionInfo(
        server=configuration.host,
        ca_path=configuration.ssl_ca_cert,
        insecure=not configuration.verify_ssl,
        username=configuration.username or None,
        password=configuration.password or None,
        scheme=scheme,
        token=token,
        certificate_path=configuration.cert_file,
        private_key_path=configuration.key_file,
    )
