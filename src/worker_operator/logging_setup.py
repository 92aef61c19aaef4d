from __future__ import annotations

import json
import logging
import logging.config
import os
from contextvars import ContextVar, Token

_CURRENT_RECONCILE_KEY: ContextVar[str] = ContextVar("reconcile_key", default="-")
_STANDARD_LOGRECORD_ATTRS = {
    "name",
    "msg",
    "message",
    "asctime",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}
# Extras kopf attaches to its per-object log records.
_KOPF_RECORD_ATTRS = {"settings", "k8s_skip", "k8s_ref"}


class _ReconcileKeyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "reconcile_key") or getattr(record, "reconcile_key") in (None, ""):
            record.reconcile_key = _CURRENT_RECONCILE_KEY.get()
        if record.reconcile_key == "-":
            ref = getattr(record, "k8s_ref", None)
            if isinstance(ref, dict) and ref.get("name"):
                record.reconcile_key = f"{ref.get('namespace') or ''}/{ref['name']}"
        return True


class _JsonExtraFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _extract_extras(record)
        if not extras:
            return base
        extras_json = json.dumps(extras, indent=2, default=str, sort_keys=True)
        return f"{base}\n{extras_json}"


def _extract_extras(record: logging.LogRecord) -> dict[str, object]:
    extras: dict[str, object] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOGRECORD_ATTRS or key in _KOPF_RECORD_ATTRS:
            continue
        if key == "reconcile_key":
            continue
        extras[key] = value
    return extras


def set_reconcile_key(key: str | None) -> Token[str]:
    """Set the `reconcile_key` injected into log records for the current task.

    Returns a token for `reset_reconcile_key`.
    """
    return _CURRENT_RECONCILE_KEY.set(key or "-")


def reset_reconcile_key(token: Token[str]) -> None:
    _CURRENT_RECONCILE_KEY.reset(token)


def _install_reconcile_key_filter() -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if any(isinstance(f, _ReconcileKeyFilter) for f in handler.filters):
            continue
        handler.addFilter(_ReconcileKeyFilter())


def configure_logging(*, log_level: str = "INFO") -> None:
    """Configure root logging with a consistent format.

    Format includes the WorkerCluster key being reconciled plus `module:lineno`,
    so interleaved output from concurrent workers stays attributable.
    """
    console_level_name = str(log_level).upper()
    default_console_fmt = (
        "%(asctime)s %(levelname)s [%(reconcile_key)s] "
        "%(module)s %(pathname)s:%(lineno)d %(message)s"
    )
    console_fmt = os.getenv("CONSOLE_LOG_FORMAT", default_console_fmt)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "()": "worker_operator.logging_setup._JsonExtraFormatter",
                    "format": console_fmt,
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": console_level_name,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": "DEBUG", "handlers": ["console"]},
        }
    )

    _install_reconcile_key_filter()
    logging.captureWarnings(True)

    # Reduce noisy third-party request logs by default.
    logging.getLogger("kubernetes_asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("kopf.objects").setLevel(logging.INFO)
