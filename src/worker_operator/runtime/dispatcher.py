"""Runs reconcile passes for kopf handlers and maps failures to kopf retries."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone

import kopf
from pydantic import ValidationError

from worker_operator.controller.models import ReconcileRequest, ReconcileResult
from worker_operator.controller.reconciler import WorkerClusterReconciler
from worker_operator.errors import OwnershipError, TemplatePreconditionError
from worker_operator.logging_setup import reset_reconcile_key, set_reconcile_key
from worker_operator.models.config import ControllerConfig
from worker_operator.models.meta import ObjectKey

logger = logging.getLogger(__name__)

# Failures that another pass over the same object cannot fix.
_PERMANENT_ERRORS = (TemplatePreconditionError, OwnershipError, ValidationError)


class ReconcileDispatcher:
    """Serializes reconcile passes per WorkerCluster and records their outcome.

    WorkerCluster change handlers, the resync timer and Deployment events can
    fire for the same key at once, so passes for one key run under a per-key
    lock. Each pass is bounded by `reconcile_timeout_s`. A failed pass is
    logged and re-raised as `kopf.TemporaryError` with an exponential delay,
    or as `kopf.PermanentError` when retrying cannot help.
    """

    def __init__(
        self,
        reconciler: WorkerClusterReconciler,
        *,
        config: ControllerConfig | None = None,
    ) -> None:
        self._reconciler = reconciler
        self._config = config or ControllerConfig()
        self._locks: defaultdict[ObjectKey, asyncio.Lock] = defaultdict(asyncio.Lock)

        self._in_flight = 0
        self._succeeded = 0
        self._failed = 0
        self._last_error: str | None = None
        self._last_error_at: datetime | None = None

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def reconciles_succeeded(self) -> int:
        return self._succeeded

    @property
    def reconciles_failed(self) -> int:
        return self._failed

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def last_error_at(self) -> datetime | None:
        return self._last_error_at

    def backoff_delay(self, retry: int) -> float:
        """Delay before retrying after `retry + 1` consecutive failures."""
        return min(self._config.backoff_base_s * 2**retry, self._config.backoff_max_s)

    async def dispatch(self, key: ObjectKey, *, retry: int = 0) -> ReconcileResult:
        """Run one reconcile pass for `key`.

        Args:
            key: WorkerCluster to reconcile
            retry: Number of consecutive failed attempts kopf has seen for this handler

        Raises:
            kopf.TemporaryError: the pass failed and should be retried, or asked to requeue
            kopf.PermanentError: the pass failed on input that must be fixed first
        """
        async with self._locks[key]:
            self._in_flight += 1
            token = set_reconcile_key(str(key))
            try:
                result = await asyncio.wait_for(
                    self._reconciler.reconcile(ReconcileRequest(key=key)),
                    timeout=self._config.reconcile_timeout_s,
                )
            except _PERMANENT_ERRORS as exc:
                message = self._record_failure(exc)
                logger.error(
                    "Reconcile of WorkerCluster %s failed permanently: %s",
                    key,
                    message,
                    exc_info=exc,
                )
                raise kopf.PermanentError(message) from exc
            except Exception as exc:
                message = self._record_failure(exc)
                delay = self.backoff_delay(retry)
                logger.error(
                    "Reconcile of WorkerCluster %s failed, retrying in %.1fs: %s",
                    key,
                    delay,
                    message,
                    exc_info=exc,
                )
                raise kopf.TemporaryError(message, delay=delay) from exc
            finally:
                self._in_flight -= 1
                reset_reconcile_key(token)

        self._succeeded += 1
        if result.requeue_after is not None:
            raise kopf.TemporaryError(
                f"Requeue of WorkerCluster {key} requested", delay=result.requeue_after
            )
        return result

    def forget(self, key: ObjectKey) -> None:
        """Drop per-key state once a WorkerCluster is gone."""
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def _record_failure(self, exc: BaseException) -> str:
        self._failed += 1
        self._last_error = _sanitize_error(exc)
        self._last_error_at = datetime.now(timezone.utc)
        return self._last_error


def _sanitize_error(exc: BaseException) -> str:
    value = str(exc).strip()
    if not value:
        value = type(exc).__name__
    return value[:512]
