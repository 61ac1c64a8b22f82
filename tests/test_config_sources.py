"""Test configuration reading from multiple sources."""

import os
from datetime import timedelta
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from chatrelay.configs import config as config_module
from chatrelay.configs.config import AppConfig
from chatrelay.configs.system import PRIMARY_BREAKER_NAME, TOOL_BREAKER_NAME


class TestConfigSources:
    """Test configuration loading from multiple sources."""

    def test_static_yaml_defaults(self):
        config = AppConfig()

        assert config.memory.history_limit == 20
        assert config.memory.history_expiry == timedelta(hours=24)
        assert config.memory.cleanup_interval == timedelta(hours=1)
        assert config.intent.high_confidence == 0.8
        assert config.providers.primary == "openai"
        assert config.providers.emergency == "static"

        primary = config.circuit_breakers[PRIMARY_BREAKER_NAME]
        assert primary.failure_threshold == 3
        assert primary.recovery_timeout == timedelta(seconds=30)
        assert config.circuit_breakers[TOOL_BREAKER_NAME].half_open_max_calls == 3

    def test_config_env_vars_work(self):
        """Environment variables override the static YAML."""
        env_vars = {
            "CHATRELAY_MEMORY__HISTORY_LIMIT": "7",
            "CHATRELAY_PROVIDERS__FALLBACK": "static",
            "CHATRELAY_PROVIDERS__PROVIDER_TIMEOUT": "PT5S",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            config = AppConfig()

            assert config.memory.history_limit == 7
            assert config.providers.fallback == "static"
            assert config.providers.provider_timeout == timedelta(seconds=5)

    def test_breaker_override_merges_with_yaml(self):
        env_vars = {
            f"CHATRELAY_CIRCUIT_BREAKERS__{PRIMARY_BREAKER_NAME.upper()}"
            "__FAILURE_THRESHOLD": "10",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            config = AppConfig()

            primary = config.circuit_breakers[PRIMARY_BREAKER_NAME]
            assert primary.failure_threshold == 10
            assert primary.half_open_max_calls == 2

    def test_invalid_thresholds_are_rejected(self):
        env_vars = {"CHATRELAY_INTENT__HIGH_CONFIDENCE": "0.4"}

        with patch.dict(os.environ, env_vars, clear=False):
            with pytest.raises(ValidationError):
                AppConfig()

    def test_invalid_breaker_threshold_is_rejected(self):
        env_vars = {
            f"CHATRELAY_CIRCUIT_BREAKERS__{TOOL_BREAKER_NAME.upper()}"
            "__FAILURE_THRESHOLD": "0",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            with pytest.raises(ValidationError):
                AppConfig()

    def test_configmap_takes_precedence_over_env(self, tmp_path, monkeypatch):
        configmap = tmp_path / "configmap.yaml"
        configmap.write_text("memory:\n  history_limit: 42\n", encoding="utf-8")
        monkeypatch.setattr(config_module, "CONFIGMAP_CONFIG_FILE", configmap)

        with patch.dict(
            os.environ, {"CHATRELAY_MEMORY__HISTORY_LIMIT": "7"}, clear=False
        ):
            config = AppConfig()

        assert config.memory.history_limit == 42
        # Keys absent from the ConfigMap still come from lower sources.
        assert config.memory.history_expiry == timedelta(hours=24)
