"""Config Loader - Loads client configuration from YAML or the environment.

Both sources go through the same path: a raw mapping whose strings may hold
${ENV_VAR} references is expanded against os.environ, then validated into a
ClientConfig. The environment loader simply starts from a mapping of
references ({"domain": "${AUTH_MGMT_DOMAIN}", ...}).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from auth_mgmt.models import ClientConfig


class ConfigError(Exception):
    """Raised when configuration loading fails."""


DEFAULT_ENV_PREFIX = "AUTH_MGMT_"

# Fields read by load_client_config_from_env, with whether they are required
ENV_FIELDS = (("domain", True), ("api_token", True), ("timeout", False))

_ENV_REF_PATTERN = re.compile(r"\$\{([^}]+)\}")


def load_client_config(config_path: Path) -> ClientConfig:
    """Load client configuration from a YAML file, expanding ${ENV_VAR} references."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError("Config file must be a YAML mapping")

    return _build_config(raw, source=f"config file {config_path}")


def load_client_config_from_env(prefix: str = DEFAULT_ENV_PREFIX) -> ClientConfig:
    """Build client configuration from {prefix}DOMAIN, {prefix}API_TOKEN and {prefix}TIMEOUT."""
    raw: dict[str, Any] = {}
    for field_name, required in ENV_FIELDS:
        env_name = f"{prefix}{field_name.upper()}"
        if required or os.environ.get(env_name, "").strip():
            raw[field_name] = "${%s}" % env_name

    return _build_config(raw, source="environment")


def _build_config(raw: dict[str, Any], source: str) -> ClientConfig:
    try:
        return ClientConfig.model_validate(_expand_env_refs(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e


def _expand_env_refs(data: Any) -> Any:
    """Replace ${ENV_VAR} references in every string nested in data.

    Raises:
        ConfigError: If a referenced variable is unset or blank.
    """
    if isinstance(data, str):
        return _ENV_REF_PATTERN.sub(lambda match: _require_env(match.group(1)), data)
    if isinstance(data, dict):
        return {key: _expand_env_refs(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_refs(item) for item in data]
    return data


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None or not value.strip():
        raise ConfigError(f"Missing required environment variable: {name}")
    return value
