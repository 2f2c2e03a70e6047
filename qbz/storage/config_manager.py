"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from qbz.exceptions import ConfigurationError
from qbz.models.config import ClientConfig
from qbz.models.quality import Quality

log = logging.getLogger(__name__)


class ConfigManager:
    """Handles all operations related to the client's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, overrides: Optional[dict[str, Any]] = None) -> ClientConfig:
        """
        Loads configuration from the INI file, applies overrides, and validates it.

        Args:
            overrides: Values taking precedence over the file, e.g. CLI options.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'qbz init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
            if self._migrate_if_needed():
                log.info("[yellow]Configuration file was updated with new defaults.[/yellow]")
            config_from_file = self._get_config_as_dict()
        except (configparser.Error, ValueError) as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if overrides:
            config_from_file.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return ClientConfig(
                **config_from_file, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file, filling unspecified keys
        with model defaults.
        """
        try:
            config = ClientConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings:\n{e}") from e

        parser = configparser.ConfigParser(interpolation=None)
        parser["DEFAULT"] = {
            key: self._to_ini_value(key, getattr(config, key))
            for key in sorted(ClientConfig.get_ini_keys())
        }

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                parser.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini_value(key: str, value: Any) -> str:
        if key == "quality":
            # Stored as the user-friendly code
            return str(Quality(value).user_code)
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        defaults = ClientConfig()
        return {
            "email": section.get("email", ""),
            "password": section.get("password", ""),
            "token": section.get("token", ""),
            "quality": section.getint("quality", Quality(defaults.quality).user_code),
            "cache_size_mb": section.getint("cache_size_mb", defaults.cache_size_mb),
            "prefetch_queue_size": section.getint(
                "prefetch_queue_size", defaults.prefetch_queue_size
            ),
            "request_timeout": section.getfloat(
                "request_timeout", defaults.request_timeout
            ),
            "download_timeout": section.getfloat(
                "download_timeout", defaults.download_timeout
            ),
            "download_connect_timeout": section.getfloat(
                "download_connect_timeout", defaults.download_connect_timeout
            ),
            "bundle_retries": section.getint("bundle_retries", defaults.bundle_retries),
        }

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = ClientConfig()
        config_section = self._parser["DEFAULT"]
        needs_saving = False

        for key in sorted(ClientConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini_value(key, getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
