"""Tests for rental_config loading, validation and environment overrides."""

from pathlib import Path
from uuid import UUID

import pytest
import yaml

from rental_config import get_active_config
from rental_config.loader import compute_checksum, parse_config, validate_config
from rental_config.schema import DEFAULT_SYSTEM_ACTOR_ID


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "billing.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultConfig:

    def test_bundled_defaults(self):
        config = get_active_config(environ={})
        assert config.config_id == "default"
        assert config.storage.database_url.startswith("sqlite:///")
        assert config.gateway.max_attempts == 0
        assert config.scheduler.enabled is False
        assert config.generation.system_actor_id == DEFAULT_SYSTEM_ACTOR_ID

    def test_database_url_override(self):
        config = get_active_config(environ={"RENTAL_DATABASE_URL": "sqlite:///other.db"})
        assert config.storage.database_url == "sqlite:///other.db"

    def test_config_path_from_environment(self, tmp_path):
        path = _write(tmp_path, {"config_id": "from-env"})
        config = get_active_config(environ={"RENTAL_CONFIG": str(path)})
        assert config.config_id == "from-env"

    def test_trace_logged(self, captured_logs):
        get_active_config(environ={})
        traces = [r for r in captured_logs() if r["message"] == "RENTAL_CONFIG_TRACE"]
        assert traces[0]["checksum"]


class TestCustomConfig:

    def test_partial_file_uses_defaults(self, tmp_path):
        path = _write(tmp_path, {"gateway": {"max_attempts": 3}})
        config = get_active_config(path, environ={})
        assert config.gateway.max_attempts == 3
        assert config.storage.statement_timeout_ms == 5000

    def test_system_actor_parsed(self, tmp_path):
        actor = "11111111-2222-3333-4444-555555555555"
        path = _write(tmp_path, {"generation": {"system_actor_id": actor}})
        assert get_active_config(path, environ={}).generation.system_actor_id == UUID(actor)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml", environ={})

    @pytest.mark.parametrize(
        "data",
        [
            {"unknown": 1},
            {"gateway": {"retries": 3}},
            {"scheduler": {"interval": 10}},
        ],
    )
    def test_unknown_keys_rejected(self, tmp_path, data):
        with pytest.raises(ValueError):
            get_active_config(_write(tmp_path, data), environ={})

    @pytest.mark.parametrize(
        "data, message",
        [
            ({"gateway": {"max_attempts": -1}}, "max_attempts"),
            ({"scheduler": {"lead_days": 28}}, "lead_days"),
            ({"storage": {"statement_timeout_ms": 0}}, "statement_timeout_ms"),
        ],
    )
    def test_validation(self, data, message):
        errors = validate_config(parse_config(data))
        assert any(message in e for e in errors)


class TestChecksum:

    def test_stable_under_key_order(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_changes_with_content(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
