"""
Unit tests for configuration loading
Tests YAML loading, merging and VDR_* environment overrides
"""

import pytest
import yaml
from pydantic import ValidationError

from vehicle_data_receiver.config.loader import load_config, load_yaml_config, merge_configs
from vehicle_data_receiver.config.settings import ReceiverSettings


class TestConfigLoader:
    """Test configuration loading"""

    def test_defaults(self):
        config = ReceiverSettings()

        assert config.retry.max_attempts == 10
        assert config.coordinator.batch_size == 100
        assert config.vehicle_management.routes["speed"] == "/v1/trucks/{truck_id}/speeds"

    def test_load_from_yaml(self, tmp_path):
        config_file = tmp_path / "receiver.yaml"
        config_file.write_text(
            yaml.safe_dump(
                {
                    "database": {"connection_url": "postgresql://db:5432/vdr"},
                    "coordinator": {"batch_size": 25},
                    "vehicle_management": {"routes": {"speed": "/v2/speeds/{imei}"}},
                }
            )
        )

        config = load_config(str(config_file))

        assert config.database.connection_url == "postgresql://db:5432/vdr"
        assert config.coordinator.batch_size == 25
        assert config.coordinator.page_size == 100
        assert config.vehicle_management.routes == {"speed": "/v2/speeds/{imei}"}

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("VDR_RETRY_MAX_ATTEMPTS", "4")
        monkeypatch.setenv("VDR_LOG_LEVEL", "DEBUG")

        config = load_config()

        assert config.retry.max_attempts == 4
        assert config.observability.log_level == "DEBUG"

    def test_overrides_win_over_file(self, tmp_path):
        config_file = tmp_path / "receiver.yaml"
        config_file.write_text("retry:\n  max_attempts: 3\n  jitter: true\n")

        config = load_config(str(config_file), {"retry": {"max_attempts": 7}})

        assert config.retry.max_attempts == 7
        assert config.retry.jitter is True

    def test_invalid_value_rejected(self, tmp_path):
        config_file = tmp_path / "receiver.yaml"
        config_file.write_text("coordinator:\n  batch_size: 0\n")

        with pytest.raises(ValidationError):
            load_config(str(config_file))

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_yaml_config("/nonexistent/receiver.yaml")

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_yaml_config(str(config_file)) == {}

    def test_merge_configs_is_deep(self):
        merged = merge_configs(
            {"database": {"connection_url": "a", "connect_timeout": 5}},
            {"database": {"connection_url": "b"}},
        )

        assert merged == {"database": {"connection_url": "b", "connect_timeout": 5}}
