"""
Configuration Loader (``membership_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``membership_config.schema`` dataclasses, then applies environment
overrides.  Runtime callers go through ``membership_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError``.
* Wrong value types  -> ``ValueError``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from membership_config.schema import (
    DatabaseSettings,
    KernelConfig,
    LoggingSettings,
    WorkflowSettings,
)

ENV_CONFIG_PATH = "MEMBERSHIP_CONFIG"
ENV_DATABASE_URL = "DATABASE_URL"
ENV_LOG_LEVEL = "MEMBERSHIP_LOG_LEVEL"

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root in {path} must be a mapping")
    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


def _int(section: str, data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{section}.{key} must be a non-negative integer, got {value!r}")
    return value


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    """Parse DatabaseSettings from the ``database`` section."""
    url = data["url"]
    if not isinstance(url, str) or not url.strip():
        raise ValueError("database.url must be a non-empty string")
    echo = data.get("echo", False)
    if not isinstance(echo, bool):
        raise ValueError(f"database.echo must be a boolean, got {echo!r}")
    return DatabaseSettings(
        url=url,
        echo=echo,
        pool_size=_int("database", data, "pool_size", 20),
        max_overflow=_int("database", data, "max_overflow", 10),
        pool_timeout=_int("database", data, "pool_timeout", 30),
        pool_recycle=_int("database", data, "pool_recycle", 1800),
    )


def parse_workflow(data: Mapping[str, Any]) -> WorkflowSettings:
    """Parse WorkflowSettings from the ``workflow`` section."""
    placeholder = data.get("rejection_placeholder", WorkflowSettings.rejection_placeholder)
    if not isinstance(placeholder, str) or not placeholder.strip():
        raise ValueError("workflow.rejection_placeholder must be a non-empty string")
    return WorkflowSettings(rejection_placeholder=placeholder)


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    """Parse LoggingSettings from the ``logging`` section."""
    return LoggingSettings(level=_level(data.get("level", LoggingSettings.level)))


def _level(value: Any) -> str:
    level = str(value).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def parse_config(data: Mapping[str, Any]) -> KernelConfig:
    """
    Parse a complete KernelConfig from a dict.

    Raises:
        KeyError: if ``database`` or ``database.url`` is missing.
        ValueError: if a value has the wrong type.
    """
    if "database" not in data:
        raise KeyError("database")
    return KernelConfig(
        database=parse_database(_section(data, "database")),
        workflow=parse_workflow(_section(data, "workflow")),
        logging=parse_logging(_section(data, "logging")),
    )


def apply_env_overrides(
    config: KernelConfig, environ: Mapping[str, str],
) -> KernelConfig:
    """Return ``config`` with ``DATABASE_URL`` / ``MEMBERSHIP_LOG_LEVEL`` applied."""
    if environ.get(ENV_DATABASE_URL):
        config = replace(
            config,
            database=replace(config.database, url=environ[ENV_DATABASE_URL]),
        )
    if environ.get(ENV_LOG_LEVEL):
        config = replace(
            config,
            logging=LoggingSettings(level=_level(environ[ENV_LOG_LEVEL])),
        )
    return config


def load_config(path: Path, environ: Mapping[str, str]) -> KernelConfig:
    """Load ``path``, parse it and apply environment overrides."""
    return apply_env_overrides(parse_config(load_yaml_file(path)), environ)
