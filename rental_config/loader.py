"""
Configuration Loader (``rental_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``rental_config.schema`` dataclasses.  The single public entry point for
runtime config is ``rental_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected, so a typo never silently falls back to a
  default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from rental_config.schema import (
    BillingConfig,
    GatewayConfig,
    GenerationConfig,
    SchedulerConfig,
    StorageConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _check_keys(section: str, data: dict[str, Any], cls: type) -> None:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown key(s) in {section}: {', '.join(unknown)}")


def parse_storage(data: dict[str, Any]) -> StorageConfig:
    _check_keys("storage", data, StorageConfig)
    return StorageConfig(**data)


def parse_generation(data: dict[str, Any]) -> GenerationConfig:
    _check_keys("generation", data, GenerationConfig)
    if "system_actor_id" in data:
        return GenerationConfig(system_actor_id=UUID(str(data["system_actor_id"])))
    return GenerationConfig()


def parse_gateway(data: dict[str, Any]) -> GatewayConfig:
    _check_keys("gateway", data, GatewayConfig)
    return GatewayConfig(**data)


def parse_scheduler(data: dict[str, Any]) -> SchedulerConfig:
    _check_keys("scheduler", data, SchedulerConfig)
    return SchedulerConfig(**data)


def parse_config(data: dict[str, Any]) -> BillingConfig:
    """Parse a full configuration document."""
    top_level = {"config_id", "version", "storage", "generation", "gateway", "scheduler"}
    unknown = sorted(set(data) - top_level)
    if unknown:
        raise ValueError(f"Unknown top-level key(s): {', '.join(unknown)}")

    return BillingConfig(
        config_id=str(data.get("config_id", "default")),
        version=int(data.get("version", 1)),
        storage=parse_storage(data.get("storage") or {}),
        generation=parse_generation(data.get("generation") or {}),
        gateway=parse_gateway(data.get("gateway") or {}),
        scheduler=parse_scheduler(data.get("scheduler") or {}),
        checksum=compute_checksum(data),
    )


def validate_config(config: BillingConfig) -> list[str]:
    """Return a list of validation errors (empty when valid)."""
    errors: list[str] = []
    if not config.storage.database_url:
        errors.append("storage.database_url is required")
    if config.storage.statement_timeout_ms <= 0:
        errors.append("storage.statement_timeout_ms must be positive")
    if config.storage.pool_size <= 0:
        errors.append("storage.pool_size must be positive")
    if config.gateway.max_attempts < 0:
        errors.append("gateway.max_attempts must be >= 0 (0 = unlimited)")
    if config.scheduler.tick_interval_seconds <= 0:
        errors.append("scheduler.tick_interval_seconds must be positive")
    if not 0 <= config.scheduler.lead_days <= 27:
        errors.append("scheduler.lead_days must be between 0 and 27")
    return errors


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
