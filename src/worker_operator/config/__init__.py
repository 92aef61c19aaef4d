"""Configuration loading and validation."""

from worker_operator.config.loader import (
    ConfigError,
    ConfigErrorCode,
    load_config,
    load_config_from_dict,
    resolve_control_plane,
    resolve_env_var,
)

__all__ = [
    "ConfigError",
    "ConfigErrorCode",
    "load_config",
    "load_config_from_dict",
    "resolve_control_plane",
    "resolve_env_var",
]
