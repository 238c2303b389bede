"""
Configuration management for the organizer.
Handles loading, validation, and merging of configurations from multiple sources.
"""

import os
import json
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
import argparse

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "CLEANSWEEP_"


class ConfigManager:
    """Manage configuration from defaults, files, environment variables and command line."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        cli_args: Optional[argparse.Namespace] = None,
        load_env_file: bool = True,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file (.json, .yaml, .yml)
            cli_args: Optional command line arguments
            load_env_file: Whether to read a .env file into the environment first
        """
        self.config = self._load_default_config()

        if config_file and config_file.exists():
            self._load_from_file(config_file)

        if load_env_file:
            load_dotenv()
        self._load_from_env()

        if cli_args:
            self._load_from_cli(cli_args)

        self._validate_config()

        logger.debug("Configuration loaded successfully")

    def _load_default_config(self) -> Dict[str, Any]:
        """Load default configuration."""
        return {
            "monitoring": {
                "debounce_interval": 0.5,  # seconds of quiet before a scan
                "start_delay_after_setup": 3.5,
                "rescan_on_rule_add": True,
            },
            "status": {
                "display_duration": 5.0,
            },
            "history": {
                "max_recent_moves": 10,
            },
            "settings": {
                "directory": None,  # None: per-user app data directory
                "file_name": "settings.json",
            },
            "watch": {
                "default_folder": None,  # None: ~/Downloads
            },
            "logging": {
                "level": "INFO",
                "file": None,
                "max_size": 10485760,  # 10MB
                "backup_count": 5,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        }

    def _load_from_file(self, config_file: Path):
        """Load configuration from file."""
        logger.info(f"Loading configuration from {config_file}")

        try:
            with open(config_file, "r") as f:
                if config_file.suffix == ".json":
                    file_config = json.load(f)
                elif config_file.suffix in (".yaml", ".yml"):
                    file_config = yaml.safe_load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {config_file}")

            self._deep_merge(self.config, file_config)

        except Exception as e:
            logger.error(f"Error loading config file: {e}")
            raise

    def _load_from_env(self):
        """Load configuration from CLEANSWEEP_SECTION__KEY environment variables."""
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_path = key[len(ENV_PREFIX) :].lower().split("__")
                if len(config_path) < 2:
                    continue
                self._set_nested_config(self.config, config_path, value)

    def _load_from_cli(self, cli_args: argparse.Namespace):
        """Load configuration from command line arguments."""
        cli_mappings = {
            "watch": ["watch", "default_folder"],
            "settings_dir": ["settings", "directory"],
            "log_level": ["logging", "level"],
            "log_file": ["logging", "file"],
            "config_file": None,  # Special case - already handled
        }

        for arg_name, config_path in cli_mappings.items():
            if hasattr(cli_args, arg_name) and getattr(cli_args, arg_name) is not None:
                if config_path:
                    self._set_nested_config(
                        self.config, config_path, getattr(cli_args, arg_name)
                    )

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]):
        """Deep merge update dictionary into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _set_nested_config(
        self, config_dict: Dict[str, Any], path: List[str], value: Any
    ):
        """Set a value in a nested dictionary using a path."""
        # Convert value to appropriate type if it's a string
        if isinstance(value, str):
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)
            elif value.replace(".", "", 1).isdigit() and value.count(".") == 1:
                value = float(value)

        current = config_dict
        for part in path[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value

    def _validate_config(self):
        """Validate configuration values."""
        errors = []

        monitoring = self.config["monitoring"]
        for key in ("debounce_interval", "start_delay_after_setup"):
            if not isinstance(monitoring[key], (int, float)) or monitoring[key] < 0:
                errors.append(f"monitoring.{key} must be a number >= 0")

        duration = self.config["status"]["display_duration"]
        if not isinstance(duration, (int, float)) or duration <= 0:
            errors.append("status.display_duration must be a number > 0")

        capacity = self.config["history"]["max_recent_moves"]
        if not isinstance(capacity, int) or capacity < 1:
            errors.append("history.max_recent_moves must be >= 1")

        if not self.config["settings"]["file_name"]:
            errors.append("settings.file_name must not be empty")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(self.config["logging"]["level"]).upper() not in valid_log_levels:
            errors.append(f"logging level must be one of {valid_log_levels}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'monitoring.debounce_interval')
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        parts = path.split(".")
        current = self.config

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def set(self, path: str, value: Any):
        """
        Set configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'status.display_duration')
            value: Value to set
        """
        parts = path.split(".")
        current = self.config

        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = value

    def save(self, filepath: Path, format: str = "json"):
        """
        Save configuration to file.

        Args:
            filepath: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        logger.info(f"Saving configuration to {filepath}")

        with open(filepath, "w") as f:
            if format == "json":
                json.dump(self.config, f, indent=2)
            elif format in ("yaml", "yml"):
                yaml.safe_dump(self.config, f, default_flow_style=False)
            else:
                raise ValueError(f"Unsupported format: {format}")
