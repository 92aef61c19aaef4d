"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from worker_operator.models.config import Config, ControlPlaneConfig

logger = logging.getLogger(__name__)
_OTHERS_ACCESS_MASK = 0o077


class ConfigErrorCode(str, Enum):
    """Stable config error codes for CLI and runtime reporting."""

    FILE_NOT_FOUND = "CONFIG_FILE_NOT_FOUND"
    YAML_INVALID = "CONFIG_YAML_INVALID"
    EMPTY_FILE = "CONFIG_EMPTY_FILE"
    ROOT_NOT_MAPPING = "CONFIG_ROOT_NOT_MAPPING"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    ENV_VAR_MISSING = "CONFIG_ENV_VAR_MISSING"


class ConfigError(Exception):
    """Configuration loading or validation error."""

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.path = path
        self.__cause__ = cause


def load_config(path: Path) -> Config:
    """Load and validate the operator config from a YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable, or fails validation
    """
    try:
        text = path.read_text()
    except FileNotFoundError as e:
        raise ConfigError(
            f"Config file not found: {path}", code=ConfigErrorCode.FILE_NOT_FOUND, path=path
        ) from e

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {path}: {e}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=e,
        ) from e

    if raw is None:
        raise ConfigError(
            f"Config file is empty: {path}", code=ConfigErrorCode.EMPTY_FILE, path=path
        )
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config must be a YAML mapping, got {type(raw).__name__}",
            code=ConfigErrorCode.ROOT_NOT_MAPPING,
            path=path,
        )

    config = load_config_from_dict(raw, path=path)
    _warn_if_inline_auth_exposed(path, config.control_plane)
    return config


def load_config_from_dict(data: dict[str, Any], *, path: Path | None = None) -> Config:
    """Validate an already parsed config mapping.

    Raises:
        ConfigError: If validation fails
    """
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        where = f" ({path})" if path else ""
        details = "\n".join(
            f"  {' -> '.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(
            f"Config validation failed{where}:\n{details}",
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=e,
        ) from e


def resolve_env_var(env_var_name: str) -> str:
    """Return the value of a required environment variable.

    Raises:
        ConfigError: If the variable is not set
    """
    value = os.environ.get(env_var_name)
    if value is None:
        raise ConfigError(
            f"Required environment variable not set: {env_var_name}",
            code=ConfigErrorCode.ENV_VAR_MISSING,
        )
    return value


def resolve_control_plane(config: ControlPlaneConfig) -> ControlPlaneConfig:
    """Return `config` with `auth` taken from `auth_env` when that is set.

    Raises:
        ConfigError: If `auth_env` names an unset variable
    """
    if not config.auth_env:
        return config
    return config.model_copy(update={"auth": resolve_env_var(config.auth_env)})


def _warn_if_inline_auth_exposed(path: Path, control_plane: ControlPlaneConfig) -> None:
    """Warn when an inline control-plane credential sits in a file others can read."""
    if control_plane.auth_env or "auth" not in control_plane.model_fields_set:
        return
    if os.name != "posix":
        return
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError:
        return
    if mode & _OTHERS_ACCESS_MASK:
        logger.warning(
            "control_plane.auth is set inline in a config file readable by others: "
            "path=%s mode=%04o; chmod 0600 or use control_plane.auth_env",
            path,
            mode,
        )
