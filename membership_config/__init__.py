"""
membership_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``KernelConfig``.

Architecture position:
    Configuration.  Sits above ``membership_kernel`` and below
    ``membership_api``.  The kernel never imports from
    ``membership_config``; the process entry point passes the relevant
    settings into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or malformed settings.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from membership_config.loader import ENV_CONFIG_PATH, load_config
from membership_config.schema import (
    DatabaseSettings,
    KernelConfig,
    LoggingSettings,
    WorkflowSettings,
)

_logger = logging.getLogger("membership_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelConfig:
    """The single public configuration entrypoint.

    Resolution order for the file: ``path`` argument, then the
    ``MEMBERSHIP_CONFIG`` environment variable, then the packaged
    ``defaults.yaml``.  ``DATABASE_URL`` and ``MEMBERSHIP_LOG_LEVEL``
    override the file's values.

    Args:
        path: Explicit configuration file.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        KeyError: If a required setting is missing.
        ValueError: If a setting is malformed.
    """
    env = os.environ if environ is None else environ
    config_path = path or (
        Path(env[ENV_CONFIG_PATH]) if env.get(ENV_CONFIG_PATH) else _DEFAULT_CONFIG_FILE
    )
    config = load_config(config_path, env)

    _logger.info(
        "MEMBERSHIP_CONFIG_TRACE",
        extra={
            "trace_type": "MEMBERSHIP_CONFIG_TRACE",
            "config_path": str(config_path),
            "dialect": config.database.url.split(":", 1)[0],
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "DatabaseSettings",
    "KernelConfig",
    "LoggingSettings",
    "WorkflowSettings",
    "get_active_config",
]
