"""Configuration management with JSON schema validation and environment overrides."""

import copy
import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .utils.exceptions import ConfigurationError, ValidationError
from .utils.validation import validate_config_structure

logger = logging.getLogger(__name__)

_DEFAULT_REPORT_SETTINGS: Dict[str, Any] = {
    "company_banner": "ASSANHANİL BURSA - Operational Reporting System",
    "layout": {
        "banner_columns": 6,
        "default_column_count": 11,
        "default_column_width": 15,
        "image_column_width": 50,
        "photo_row_height": 150,
        "signature_row_height": 60,
        "banner_row_height": 30,
        "title_row_height": 25,
        "header_row_height": 25,
        "summary_row_height": 20,
        "data_row_height": 20,
        "image_inset_emu": 50000,
    },
    "formats": {
        "report_date": "%Y-%m-%d %H:%M",
        "record_date": "%d/%m/%Y %H:%M",
        "file_timestamp": "%Y%m%d_%H%M%S",
    },
    "image_processing": {
        "max_dimension_px": 800,
        "max_size_kb": 500,
        "initial_quality": 90,
        "quality_step": 10,
        "min_quality": 10,
    },
    "output": {
        "directory": "reports",
        "disambiguate_names": True,
    },
    "temp_files": {
        "directory": None,
        "prefix": "techassist",
    },
}


def default_report_settings() -> Dict[str, Any]:
    """Return a fresh copy of the built-in report settings."""
    return copy.deepcopy(_DEFAULT_REPORT_SETTINGS)


def resolve_temp_directory(settings: Dict[str, Any]) -> str:
    """Return the configured scratch directory, falling back to the system one."""
    return settings.get("temp_files", {}).get("directory") or tempfile.gettempdir()


class ConfigManager:
    """Manages report engine configuration with validation and environment support."""

    def __init__(self, config_dir: str = "config") -> None:
        """Initialize configuration manager."""
        self.config_dir = config_dir
        self._config_cache: Dict[str, Dict[str, Any]] = {}
        self._load_environment()

    def _load_environment(self) -> None:
        """Load environment variables from .env files."""
        try:
            env_file = os.path.join(os.getcwd(), ".env")
            if os.path.exists(env_file):
                load_dotenv(env_file)
                logger.debug("Loaded environment from .env file")

            env = os.getenv("ENVIRONMENT", "development")
            env_specific_file = os.path.join(self.config_dir, f"{env}.env")

            if os.path.exists(env_specific_file):
                load_dotenv(env_specific_file)
                logger.debug(f"Loaded environment from {env_specific_file}")

        except OSError as e:
            logger.warning(f"Failed to load environment configuration: {e}")

    def get_default_config(self) -> Dict[str, Any]:
        """Get default configuration for report generation."""
        return {
            "version": "1.0",
            "report_settings": default_report_settings(),
        }

    def load_config(self, config_name: str = "default_config") -> Dict[str, Any]:
        """Load configuration from file with caching.

        Values in the file are merged over the defaults, so a config file only
        needs to name the settings it changes.
        """
        if config_name in self._config_cache:
            return self._config_cache[config_name]

        config_file = os.path.join(self.config_dir, f"{config_name}.json")
        if not os.path.exists(config_file):
            if config_name != "default_config":
                raise ConfigurationError(f"Configuration file not found: {config_file}")
            config = self._apply_environment_overrides(self.get_default_config())
            self._config_cache[config_name] = config
            return config

        return self.load_config_file(config_file, cache_key=config_name)

    def load_config_file(
        self, config_file: str, cache_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """Load, validate and merge a configuration file from an explicit path."""
        try:
            with open(config_file, "r", encoding="utf-8") as file:
                file_config = json.load(file)

            validate_config_structure(file_config)

            config = self.merge_configs(self.get_default_config(), file_config)
            config = self._apply_environment_overrides(config)
            self.validate_runtime_config(config)

            self._config_cache[cache_key or config_file] = config
            logger.info(f"Loaded configuration: {config_file}")
            return config

        except (json.JSONDecodeError, OSError) as e:
            raise ConfigurationError(f"Failed to load configuration '{config_file}': {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration '{config_file}': {e}")

    def save_config(self, config: Dict[str, Any], config_name: str) -> None:
        """Save configuration to file."""
        try:
            validate_config_structure(config)
            os.makedirs(self.config_dir, exist_ok=True)

            config_file = os.path.join(self.config_dir, f"{config_name}.json")
            with open(config_file, "w", encoding="utf-8") as file:
                json.dump(config, file, indent=2, ensure_ascii=False)

            self._config_cache[config_name] = config
            logger.info(f"Saved configuration: {config_name}")

        except (OSError, ValidationError) as e:
            raise ConfigurationError(f"Failed to save configuration '{config_name}': {e}")

    def get_report_settings(self, config_name: str = "default_config") -> Dict[str, Any]:
        """Get the ``report_settings`` section consumed by the engine components."""
        return self.load_config(config_name)["report_settings"]

    def _apply_environment_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        settings = config.get("report_settings")
        if not settings:
            return config

        settings["company_banner"] = self._get_env_str(
            "REPORT_COMPANY_BANNER", settings.get("company_banner", "")
        )

        output_config = settings.setdefault("output", {})
        output_config["directory"] = self._get_env_str(
            "REPORT_OUTPUT_DIR", output_config.get("directory", "reports")
        )

        temp_config = settings.setdefault("temp_files", {})
        temp_dir = os.getenv("REPORT_TEMP_DIR")
        if temp_dir:
            temp_config["directory"] = temp_dir

        image_config = settings.setdefault("image_processing", {})
        image_config["max_size_kb"] = self._get_env_int(
            "MAX_IMAGE_SIZE_KB", image_config.get("max_size_kb", 500)
        )
        image_config["max_dimension_px"] = self._get_env_int(
            "MAX_IMAGE_DIMENSION", image_config.get("max_dimension_px", 800)
        )

        return config

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment variable."""
        return os.getenv(key, default)

    def get_app_config(self) -> Dict[str, Any]:
        """Get application-wide settings used by the command line entry point."""
        return {
            "log_level": self._get_env_str("LOG_LEVEL", "INFO"),
            "verbose_logging": self._get_env_bool("VERBOSE_LOGGING", True),
        }

    def merge_configs(
        self, base_config: Dict[str, Any], override_config: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Merge two configurations with override taking precedence."""
        merged = copy.deepcopy(base_config)

        for key, value in override_config.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self.merge_configs(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)

        return merged

    def validate_runtime_config(self, config: Dict[str, Any]) -> None:
        """Validate configuration at runtime with additional checks."""
        settings = config.get("report_settings", {})

        if not str(settings.get("company_banner", "")).strip():
            raise ConfigurationError("Company banner text cannot be empty")

        image_config = settings.get("image_processing", {})
        min_quality = image_config.get("min_quality", 10)
        initial_quality = image_config.get("initial_quality", 90)
        if min_quality > initial_quality:
            raise ConfigurationError(
                f"min_quality ({min_quality}) cannot exceed initial_quality ({initial_quality})"
            )

        layout = settings.get("layout", {})
        banner_columns = layout.get("banner_columns", 6)
        if banner_columns > layout.get("default_column_count", 11):
            raise ConfigurationError(
                "banner_columns cannot exceed default_column_count"
            )

    def clear_cache(self) -> None:
        """Clear configuration cache."""
        self._config_cache.clear()
        logger.debug("Configuration cache cleared")

    def get_cached_configs(self) -> List[str]:
        """Get list of cached configuration names."""
        return list(self._config_cache.keys())
