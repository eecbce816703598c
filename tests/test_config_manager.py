"""Tests for configuration manager module."""

import json
import os
from unittest.mock import patch

import pytest

from report_engine.config_manager import ConfigManager, default_report_settings
from report_engine.utils.exceptions import ConfigurationError

_OVERRIDE_VARS = (
    "REPORT_COMPANY_BANNER",
    "REPORT_OUTPUT_DIR",
    "REPORT_TEMP_DIR",
    "MAX_IMAGE_SIZE_KB",
    "MAX_IMAGE_DIMENSION",
)


class TestConfigManager:
    """Test cases for ConfigManager class."""

    @pytest.fixture(autouse=True)
    def clean_environment(self, monkeypatch):
        for name in _OVERRIDE_VARS:
            monkeypatch.delenv(name, raising=False)

    @pytest.fixture
    def temp_config_dir(self, tmp_path):
        """Create temporary config directory for testing."""
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        return str(config_dir)

    @pytest.fixture
    def sample_config(self):
        """Partial configuration overriding a few settings."""
        return {
            "version": "1.0",
            "report_settings": {
                "company_banner": "ACME Plant - Maintenance",
                "image_processing": {"max_size_kb": 250},
                "output": {"directory": "out"},
            },
        }

    def write_config(self, config_dir, name, config):
        path = os.path.join(config_dir, f"{name}.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config, f, ensure_ascii=False)
        return path

    def test_init(self, temp_config_dir):
        """Test ConfigManager initialization."""
        manager = ConfigManager(temp_config_dir)
        assert manager.config_dir == temp_config_dir
        assert isinstance(manager._config_cache, dict)

    def test_get_default_config(self, temp_config_dir):
        """Test getting default configuration."""
        manager = ConfigManager(temp_config_dir)
        config = manager.get_default_config()

        assert config["version"] == "1.0"
        settings = config["report_settings"]
        assert settings["company_banner"] == "ASSANHANİL BURSA - Operational Reporting System"
        assert settings["layout"]["photo_row_height"] == 150
        assert settings["image_processing"]["max_dimension_px"] == 800
        assert settings["image_processing"]["max_size_kb"] == 500
        assert settings["image_processing"]["min_quality"] == 10

    def test_default_settings_are_copies(self):
        first = default_report_settings()
        first["layout"]["photo_row_height"] = 1

        assert default_report_settings()["layout"]["photo_row_height"] == 150

    def test_load_config_default(self, temp_config_dir):
        """Test loading default configuration when file doesn't exist."""
        manager = ConfigManager(temp_config_dir)
        config = manager.load_config("default_config")

        assert "report_settings" in config
        assert manager.get_cached_configs() == ["default_config"]

    def test_load_missing_named_config(self, temp_config_dir):
        manager = ConfigManager(temp_config_dir)
        with pytest.raises(ConfigurationError):
            manager.load_config("missing")

    def test_load_config_from_file_merges_defaults(self, temp_config_dir, sample_config):
        """Test loading configuration from file."""
        self.write_config(temp_config_dir, "plant", sample_config)

        manager = ConfigManager(temp_config_dir)
        settings = manager.load_config("plant")["report_settings"]

        assert settings["company_banner"] == "ACME Plant - Maintenance"
        assert settings["image_processing"]["max_size_kb"] == 250
        assert settings["image_processing"]["max_dimension_px"] == 800
        assert settings["output"]["directory"] == "out"
        assert settings["layout"]["banner_columns"] == 6

    def test_load_config_file_by_path(self, temp_config_dir, sample_config):
        path = self.write_config(temp_config_dir, "plant", sample_config)

        manager = ConfigManager(temp_config_dir)
        config = manager.load_config_file(path)

        assert config["report_settings"]["company_banner"] == "ACME Plant - Maintenance"
        assert path in manager.get_cached_configs()

    def test_load_config_invalid_json(self, temp_config_dir):
        """Test loading configuration with invalid JSON."""
        with open(os.path.join(temp_config_dir, "invalid_config.json"), "w") as f:
            f.write("{ invalid json }")

        manager = ConfigManager(temp_config_dir)
        with pytest.raises(ConfigurationError):
            manager.load_config("invalid_config")

    def test_load_config_schema_violation(self, temp_config_dir):
        self.write_config(
            temp_config_dir,
            "bad",
            {"report_settings": {"image_processing": {"max_size_kb": -5}}},
        )

        manager = ConfigManager(temp_config_dir)
        with pytest.raises(ConfigurationError):
            manager.load_config("bad")

    def test_load_config_requires_report_settings(self, temp_config_dir):
        self.write_config(temp_config_dir, "bad", {"version": "1.0"})

        manager = ConfigManager(temp_config_dir)
        with pytest.raises(ConfigurationError):
            manager.load_config("bad")

    def test_runtime_validation_quality_order(self, temp_config_dir):
        self.write_config(
            temp_config_dir,
            "bad",
            {"report_settings": {"image_processing": {"initial_quality": 30, "min_quality": 50}}},
        )

        manager = ConfigManager(temp_config_dir)
        with pytest.raises(ConfigurationError):
            manager.load_config("bad")

    def test_runtime_validation_banner_columns(self, temp_config_dir):
        manager = ConfigManager(temp_config_dir)
        config = manager.get_default_config()
        config["report_settings"]["layout"]["banner_columns"] = 20

        with pytest.raises(ConfigurationError):
            manager.validate_runtime_config(config)

    def test_runtime_validation_blank_banner(self, temp_config_dir):
        manager = ConfigManager(temp_config_dir)
        config = manager.get_default_config()
        config["report_settings"]["company_banner"] = "  "

        with pytest.raises(ConfigurationError):
            manager.validate_runtime_config(config)

    def test_save_config(self, temp_config_dir, sample_config):
        """Test saving configuration to file."""
        manager = ConfigManager(temp_config_dir)
        manager.save_config(sample_config, "saved_config")

        config_file = os.path.join(temp_config_dir, "saved_config.json")
        assert os.path.exists(config_file)
        with open(config_file, "r", encoding="utf-8") as f:
            assert json.load(f) == sample_config

    def test_save_config_invalid(self, temp_config_dir):
        """Test saving invalid configuration."""
        manager = ConfigManager(temp_config_dir)
        with pytest.raises(ConfigurationError):
            manager.save_config({"version": "1.0"}, "invalid_config")

    @patch.dict(
        os.environ,
        {
            "REPORT_OUTPUT_DIR": "/srv/reports",
            "REPORT_TEMP_DIR": "/srv/scratch",
            "MAX_IMAGE_SIZE_KB": "300",
            "MAX_IMAGE_DIMENSION": "1024",
            "REPORT_COMPANY_BANNER": "Override Banner",
        },
    )
    def test_apply_environment_overrides(self, temp_config_dir):
        """Test applying environment variable overrides."""
        manager = ConfigManager(temp_config_dir)
        settings = manager._apply_environment_overrides(manager.get_default_config())[
            "report_settings"
        ]

        assert settings["output"]["directory"] == "/srv/reports"
        assert settings["temp_files"]["directory"] == "/srv/scratch"
        assert settings["image_processing"]["max_size_kb"] == 300
        assert settings["image_processing"]["max_dimension_px"] == 1024
        assert settings["company_banner"] == "Override Banner"

    @patch.dict(os.environ, {"MAX_IMAGE_SIZE_KB": "lots"})
    def test_invalid_int_override_keeps_default(self, temp_config_dir):
        manager = ConfigManager(temp_config_dir)
        settings = manager.get_report_settings()

        assert settings["image_processing"]["max_size_kb"] == 500

    def test_get_env_bool(self, temp_config_dir):
        """Test getting boolean values from environment."""
        manager = ConfigManager(temp_config_dir)

        for value in ("true", "1", "yes", "on"):
            with patch.dict(os.environ, {"TEST_BOOL": value}):
                assert manager._get_env_bool("TEST_BOOL", False) is True

        for value in ("false", "0", "off"):
            with patch.dict(os.environ, {"TEST_BOOL": value}):
                assert manager._get_env_bool("TEST_BOOL", True) is False

        with patch.dict(os.environ, {}, clear=True):
            assert manager._get_env_bool("TEST_BOOL", True) is True

    def test_get_env_int(self, temp_config_dir):
        """Test getting integer values from environment."""
        manager = ConfigManager(temp_config_dir)

        with patch.dict(os.environ, {"TEST_INT": "123"}):
            assert manager._get_env_int("TEST_INT", 456) == 123

        with patch.dict(os.environ, {"TEST_INT": "invalid"}):
            assert manager._get_env_int("TEST_INT", 456) == 456

        with patch.dict(os.environ, {}, clear=True):
            assert manager._get_env_int("TEST_INT", 456) == 456

    @patch.dict(os.environ, {"LOG_LEVEL": "DEBUG", "VERBOSE_LOGGING": "false"})
    def test_get_app_config(self, temp_config_dir):
        """Test getting application configuration."""
        manager = ConfigManager(temp_config_dir)
        app_config = manager.get_app_config()

        assert app_config["log_level"] == "DEBUG"
        assert app_config["verbose_logging"] is False
        assert set(app_config) == {"log_level", "verbose_logging"}

    def test_env_specific_file_loaded(self, temp_config_dir, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "testing")
        monkeypatch.delenv("REPORT_TEMP_DIR", raising=False)
        with open(os.path.join(temp_config_dir, "testing.env"), "w") as f:
            f.write("REPORT_TEMP_DIR=/from/env/file\n")

        try:
            manager = ConfigManager(temp_config_dir)
            settings = manager.get_report_settings()
            assert settings["temp_files"]["directory"] == "/from/env/file"
        finally:
            os.environ.pop("REPORT_TEMP_DIR", None)

    def test_merge_configs(self, temp_config_dir):
        """Test merging configurations."""
        manager = ConfigManager(temp_config_dir)

        base_config = {"a": 1, "b": {"x": 1, "y": 2}, "c": [1, 2, 3]}
        override_config = {"b": {"y": 20, "z": 30}, "d": 4}

        merged = manager.merge_configs(base_config, override_config)

        assert merged["a"] == 1
        assert merged["b"] == {"x": 1, "y": 20, "z": 30}
        assert merged["c"] == [1, 2, 3]
        assert merged["d"] == 4
        assert base_config["b"] == {"x": 1, "y": 2}

    def test_clear_cache(self, temp_config_dir):
        manager = ConfigManager(temp_config_dir)
        manager.load_config()

        manager.clear_cache()

        assert manager.get_cached_configs() == []
