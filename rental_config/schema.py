"""
BillingConfig schema.

Frozen dataclasses describing the runtime configuration of the billing
engine.  YAML is parsed into these types by the loader; nothing else in the
system reads configuration files or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

DEFAULT_SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")


@dataclass(frozen=True)
class StorageConfig:
    """Database connection settings."""

    database_url: str = "sqlite:///rental_billing.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    statement_timeout_ms: int = 5000


@dataclass(frozen=True)
class GenerationConfig:
    """Rent generation settings."""

    system_actor_id: UUID = DEFAULT_SYSTEM_ACTOR_ID


@dataclass(frozen=True)
class GatewayConfig:
    """Demo gateway settings.  ``max_attempts = 0`` means unlimited retries."""

    max_attempts: int = 0


@dataclass(frozen=True)
class SchedulerConfig:
    """In-process scheduler settings."""

    enabled: bool = False
    tick_interval_seconds: int = 3600
    lead_days: int = 0


@dataclass(frozen=True)
class BillingConfig:
    """Root configuration object returned by ``get_active_config()``."""

    config_id: str = "default"
    version: int = 1
    storage: StorageConfig = field(default_factory=StorageConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    checksum: str = ""
