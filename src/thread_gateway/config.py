"""Configuration loading utilities for the gateway.

This module handles layered configuration:
1. Built-in defaults (lowest precedence)
2. YAML file: explicit path argument, else the environment variable
   THREAD_GATEWAY_CONFIG, else "config/default.yaml"
3. Conventional environment variables (OPENAI_API_KEY, PORT, HOST, APP_ENV)
4. Nested overrides from environment variables with prefix
   ``THREAD_GATEWAY__`` (e.g., THREAD_GATEWAY__STORE__PATH=/tmp/threads.json)
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "THREAD_GATEWAY__"

DEFAULTS: Dict[str, Any] = {
    "environment": "development",
    "server": {
        "host": "0.0.0.0",
        "port": 3001,
        "cors_origins": ["*"],
        "public_dir": "public",
    },
    "store": {"path": "data/conversations.json"},
    "upstream": {
        "api_key": None,
        "base_url": None,
        "timeout": 60.0,
        "max_retries": 0,
    },
    "logging": {"level": "INFO"},
}

# Plain variable name -> (section, key); section None means top level.
_CONVENTIONAL_ENV = {
    "OPENAI_API_KEY": ("upstream", "api_key"),
    "PORT": ("server", "port"),
    "HOST": ("server", "host"),
    "APP_ENV": (None, "environment"),
}


def _coerce(value: str) -> Any:
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _apply_conventional_env(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for name, (section, key) in _CONVENTIONAL_ENV.items():
        value = os.environ.get(name)
        if not value:
            continue
        if section is None:
            cfg[key] = value
        else:
            if key == "port":
                try:
                    value = int(value)
                except ValueError as e:
                    raise ConfigError(f"Invalid {name} {value!r}, expected an integer.") from e
            cfg.setdefault(section, {})[key] = value
    return cfg


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix THREAD_GATEWAY__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., THREAD_GATEWAY__SERVER__PORT -> cfg["server"]["port"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        sub[parts[-1]] = _coerce(value)
    return cfg


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load the gateway configuration.

    Parameters
    ----------
    path : str | None
        Optional path to a YAML file. If not provided, the environment
        variable ``THREAD_GATEWAY_CONFIG`` is consulted. As a last resort
        ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Defaults merged with the file, then environment overrides applied.

    Raises
    ------
    ConfigError
        If the file exists but is not valid YAML or not a mapping, or if
        PORT is not an integer.
    """
    if path is None:
        path = os.environ.get("THREAD_GATEWAY_CONFIG", "config/default.yaml")

    cfg = copy.deepcopy(DEFAULTS)
    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
    else:
        with path_obj.open("r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Failed to parse config file {path_obj}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Invalid config format in {path_obj}, expected a mapping.")
        _merge(cfg, loaded)

    _apply_conventional_env(cfg)
    return _apply_env_overrides(cfg)
