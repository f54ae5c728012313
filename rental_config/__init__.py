"""
rental_config -- single public entrypoint for billing engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Sits above ``rental_kernel`` and beside ``rental_batch``.  The kernel
    MUST NEVER import from ``rental_config``; callers pass the relevant
    values (database URL, max_attempts, ...) into kernel constructors.

Environment overrides:
    ``RENTAL_DATABASE_URL`` replaces ``storage.database_url``.
    ``RENTAL_CONFIG`` names the YAML file when no path is given.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ValueError`` -- unknown keys or validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``RENTAL_CONFIG_TRACE`` log entry with the config id, version and
    SHA-256 checksum of the source document.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path

from rental_config.loader import load_yaml_file, parse_config, validate_config
from rental_config.schema import (
    BillingConfig,
    GatewayConfig,
    GenerationConfig,
    SchedulerConfig,
    StorageConfig,
)
from rental_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

ENV_DATABASE_URL = "RENTAL_DATABASE_URL"
ENV_CONFIG_PATH = "RENTAL_CONFIG"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> BillingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to ``$RENTAL_CONFIG`` or the
            bundled ``sets/default.yaml``.
        environ: Environment mapping (defaults to ``os.environ``).

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the configuration fails validation.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get(ENV_CONFIG_PATH) or DEFAULT_CONFIG_PATH)

    config = parse_config(load_yaml_file(config_path))

    database_url = env.get(ENV_DATABASE_URL)
    if database_url:
        config = replace(config, storage=replace(config.storage, database_url=database_url))

    errors = validate_config(config)
    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    _logger.info(
        "RENTAL_CONFIG_TRACE",
        extra={
            "trace_type": "RENTAL_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path),
            "database_override": bool(database_url),
        },
    )
    return config


__all__ = [
    "BillingConfig",
    "GatewayConfig",
    "GenerationConfig",
    "SchedulerConfig",
    "StorageConfig",
    "get_active_config",
]
