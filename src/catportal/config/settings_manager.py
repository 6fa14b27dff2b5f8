# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
SettingsManager module.

For loading, accessing, and persisting configuration
settings of the catportal deployment.

This module defines the `SettingsManager` class, which handles:
- Loading configuration from predefined TOML files.
- Falling back to default settings if no valid file is found.
- Persisting updated configurations to disk.
- Supporting both system-wide and user-specific config locations.

The configuration includes sections for logging, the deployment root
directory (under which installer caches, logos and scratch files live),
the default language and the consortium wording shown in the UI.
"""

from __future__ import annotations

import copy
import tomllib
from pathlib import Path
from typing import Any, ClassVar, TypeVar

import platformdirs
import structlog
import tomli_w

from catportal.__about__ import __app_config_name__, __app_name__
from catportal.exceptions import (
    ConfigFileNotFoundError,
    SettingsConfigurationError,
    SettingsWriteConfigurationError,
)

# Global logger (will be reconfigured by LoggingManagerSingleton)
log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

T = TypeVar("T")


class SettingsManager:
    """
    Manage configuration loading, saving, and access for catportal.

    This class attempts to load configuration data from a list of known
    locations, falling back to defaults if none are found. It also supports
    writing default or updated settings to the first writable location.

    The configuration is expected to be in TOML format and structured into
    sections such as "logger", "paths", "consortium", etc.

    Attributes
    ----------
    DEFAULT_SETTINGS_LOCATIONS (ClassVar[list[Path]]):
        An ordered list of file paths to check for configuration files.
    DEFAULT_CONFIG (ClassVar[dict[str, dict[str, Any]]]):
        The fallback configuration used if no valid file is found.
    """

    _internal_errors: list[str]

    APP_NAME: ClassVar[str] = __app_name__.lower()
    CONF_NAME: ClassVar[str] = __app_config_name__.lower()

    DEFAULT_SETTINGS_LOCATIONS: ClassVar[list[Path]] = [
        Path("config.toml"),
        Path(platformdirs.user_config_dir(APP_NAME, appauthor=False)) / CONF_NAME,
        Path(platformdirs.site_config_dir(APP_NAME, appauthor=False)) / CONF_NAME,
    ]

    DEFAULT_CONFIG: ClassVar[dict[str, dict[str, Any]]] = {
        "logger": {
            "level": "INFO",
            "debug_level": 0,
            "log_directory": str(platformdirs.user_log_dir(APP_NAME, appauthor=False)),
            "output_format": "console",
        },
        "console_handler": {"enabled": False},
        "file_handler": {
            "enabled": True,
            "file_name": APP_NAME + ".log",
        },
        "limited_file_handler": {
            "enabled": False,
            "file_name": "limited_" + APP_NAME + ".log",
            "max_bytes": 1024 * 1024,
            "backup_count": 5,
        },
        "general": {"default_language": "en"},
        "paths": {"root": str(platformdirs.user_data_dir(APP_NAME, appauthor=False))},
        "consortium": {
            "name": "eduroam",
            "nomenclature_federation": "National Roaming Operator",
            "nomenclature_institution": "Identity Provider",
        },
    }

    def __init__(self) -> None:
        """Initialize an empty SettingsManager; call `load_settings()` to populate it."""
        self._settings: dict[str, dict[str, Any]] = {}
        self._loaded_config_file: Path | None = None
        self._internal_errors: list[str] = []
        self.logger = structlog.get_logger(__name__)

    @property
    def loaded_config_file(self) -> Path | None:
        """Return the path to the loaded configuration file, if any."""
        return self._loaded_config_file

    @loaded_config_file.setter
    def loaded_config_file(self, path: Path | None) -> None:
        """Set the path to the loaded configuration file."""
        self._loaded_config_file = path

    @property
    def internal_errors(self) -> list[str]:
        """Return the list of internal errors."""
        return self._internal_errors

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Return the logger instance."""
        return self._logger

    @logger.setter
    def logger(self, logger: structlog.stdlib.BoundLogger) -> None:
        """Set the logger instance."""
        self._logger = logger

    def load_settings(self, config_path_from_cli: Path | None = None) -> None:
        """
        Load the application settings.

        Prioritizes:
        1. CLI-provided path (if not None and exists)
        2. Predefined default locations
        3. Falls back to default configuration and saves it if no file is found.
        """
        self._settings = {}
        self._internal_errors = []
        self._settings = self._load_config_from_paths(config_path_from_cli)

    def _load_config_from_paths(self, config_path_from_cli: Path | None = None) -> dict[str, dict[str, Any]]:
        """Load the configuration, prioritizing CLI path, then predefined locations."""
        if config_path_from_cli:
            self.logger.info("Attempting to load config from CLI specified path", path=str(config_path_from_cli))
            if config_path_from_cli.exists():
                try:
                    loaded = self._load_from_file(config_path_from_cli)
                except (SettingsConfigurationError, ConfigFileNotFoundError) as e:
                    self.logger.exception(
                        "Failed to load config from CLI path.", path=str(config_path_from_cli), exc_info=e
                    )
                    self._internal_errors.append(f"CLI config '{config_path_from_cli}' error: {e}")
                    raise
                else:
                    return loaded
            self.logger.warning(
                "Specified configuration file via CLI does not exist. Searching predefined locations.",
                path=str(config_path_from_cli),
            )
            self._internal_errors.append(f"CLI config '{config_path_from_cli}' not found.")

        self.logger.debug(
            "Searching for configuration file in predefined locations",
            locations=[str(p) for p in self.DEFAULT_SETTINGS_LOCATIONS],
        )
        for path_candidate in self.DEFAULT_SETTINGS_LOCATIONS:
            path = Path(path_candidate)
            if not path.exists():
                self.logger.debug("Predefined config location does not exist", path=str(path))
                continue
            try:
                loaded = self._load_from_file(path)
            except (SettingsConfigurationError, ConfigFileNotFoundError) as e:
                self.logger.exception("Predefined config file malformed or unreadable.", path=str(path), exc_info=e)
                self._internal_errors.append(f"Predefined config '{path!s}' error: {e}")
                raise
            else:
                return loaded

        self.logger.warning("No valid configuration file found; using default settings.")
        self._internal_errors.append("No configuration file found; using default settings.")
        try:
            self._save_default_config()
        except SettingsWriteConfigurationError as e:
            self.logger.exception("Failed to save default configuration after falling back to defaults.", exc_info=e)
            self._internal_errors.append(f"Failed to save default config: {e}")

        return copy.deepcopy(self.DEFAULT_CONFIG)

    def _load_from_file(self, path: Path) -> dict[str, dict[str, Any]]:
        """
        Load configuration from a specific file path.

        Raises: SettingsConfigurationError, ConfigFileNotFoundError
        """
        self.logger.info("Loading configuration from file", path=str(path))
        try:
            with path.open("rb") as f:
                config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"TOML decoding failed for configuration file: {path!s}"
            self._internal_errors.append(msg)
            self.logger.exception("TOML decoding failed for configuration file", path=str(path), exc_info=e)
            raise SettingsConfigurationError(msg) from e
        except OSError as e:
            self._internal_errors.append(f"OS error accessing config file '{path!s}': {e}")
            self.logger.exception("Operating system error accessing configuration file", path=str(path), exc_info=e)
            msg = f"Could not access file: {path!s}"
            raise ConfigFileNotFoundError(msg) from e
        self.loaded_config_file = path
        return config

    def _save_default_config(self) -> None:
        """
        Write the default configuration to the first writable location.

        Raises: SettingsWriteConfigurationError if no location is writable.
        """
        for path_candidate in self.DEFAULT_SETTINGS_LOCATIONS:
            path = Path(path_candidate)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("wb") as f:
                    tomli_w.dump(self.DEFAULT_CONFIG, f)
            except OSError as e:
                self.logger.warning("Unable to write default configuration to this location.", path=str(path), error=str(e))
                self._internal_errors.append(f"Failed to save default config to '{path!s}': {e}")
                continue
            self.logger.info("Default configuration written successfully.", path=str(path))
            self.loaded_config_file = path
            return

        msg = "Failed to write default configuration to any specified location."
        self.logger.error(msg)
        raise SettingsWriteConfigurationError(msg)

    def _is_path_writable(self, path: Path) -> bool:
        """Check if a path is writable by creating its parent directory and opening it for append."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("ab"):
                pass
        except OSError as e:
            self.logger.debug("Path is not writable.", path=str(path), error=str(e))
            return False
        return True

    def _write_config_to_file(self, target_file: Path) -> None:
        """Write the current settings to the specified file."""
        try:
            with target_file.open("wb") as f:
                tomli_w.dump(self._settings, f)
        except OSError as e:
            self.logger.exception("Failed to save configuration", path=str(target_file), exc_info=e)
            msg = f"Could not write configuration to {target_file!s}"
            raise SettingsWriteConfigurationError(msg) from e
        self.logger.info("Configuration saved successfully.", path=str(target_file))
        self._loaded_config_file = target_file

    def _save_config(self) -> None:
        """Save the current configuration to the loaded file path, or the first writable location."""
        target_file: Path | None = None

        if self._loaded_config_file and self._is_path_writable(self._loaded_config_file):
            target_file = self._loaded_config_file
        else:
            for path_candidate in self.DEFAULT_SETTINGS_LOCATIONS:
                path = Path(path_candidate)
                if self._is_path_writable(path):
                    target_file = path
                    break

        if target_file is None:
            msg = "No writable location available for saving configuration."
            self.logger.error(msg)
            raise SettingsWriteConfigurationError(msg)
        self._write_config_to_file(target_file)

    def get(self, section: str, key: str, default: T | None = None) -> T | Any:
        """
        Retrieve a value from the configuration with optional default.

        A stored ``None`` is treated like a missing key.
        """
        value = self._settings.get(section, {}).get(key)
        if value is not None:
            return value
        return default

    def get_setting(self, section: str, key: str, default: Any = None) -> Any:
        """Get a setting from a section in the configuration with optional default."""
        return self._settings.get(section, {}).get(key, default)

    def get_section(self, section: str) -> dict[str, Any]:
        """Return one section of the configuration, or an empty dict."""
        return self._settings.get(section, {})

    def get_all_settings(self) -> dict[str, Any]:
        """Get all settings as a deep copy."""
        return copy.deepcopy(self._settings)

    def set_setting(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value in memory only."""
        self._settings.setdefault(section, {})[key] = value

    def set(self, section: str, key: str, value: Any) -> None:
        """Update a configuration value and persist the change to disk."""
        self.set_setting(section, key, value)
        self.logger.debug("Set config value", section=section, key=key, value=value)
        self._save_config()

    def reload(self) -> None:
        """
        Reload configuration from the disk.

        Prioritizing the previously loaded file. If no file was previously
        loaded, or it has vanished, predefined locations are searched again.
        """
        if self._loaded_config_file and self._loaded_config_file.is_file():
            try:
                self._settings = self._load_from_file(self._loaded_config_file)
            except (SettingsConfigurationError, ConfigFileNotFoundError) as e:
                self.logger.exception(
                    "Failed to reload from previous path, attempting re-search.",
                    path=str(self._loaded_config_file),
                    exc_info=e,
                )
                self._loaded_config_file = None
                self.load_settings(config_path_from_cli=None)
            return

        self.logger.warning("No previously loaded config path for reload. Attempting to re-search.")
        self.load_settings(config_path_from_cli=None)

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_config()


class SettingsManagerSingleton:
    """
    Singleton class for SettingsManager.

    That ensure a single instance
    manages application settings.
    """

    _instance: SettingsManager | None = None
    _initialization_errors: ClassVar[list[str]] = []
    _is_configured: ClassVar[bool] = False

    @classmethod
    def get_instance(cls) -> SettingsManager:
        """Return the single instance of SettingsManager, creating it on first use."""
        if cls._instance is None:
            try:
                cls._instance = SettingsManager()
            except Exception as e:
                cls._initialization_errors.append(f"Error creating SettingsManager instance: {e}")
                cls._instance = None
                raise
        return cls._instance

    @classmethod
    def initialize_from_context(cls, config_path: Path | None = None) -> None:
        """Load settings into the singleton instance; later calls are ignored."""
        if cls._is_configured:
            cls._initialization_errors.append("SettingsManagerSingleton already configured. Cannot re-configure.")
            return

        instance = cls.get_instance()
        cls._initialization_errors.clear()

        try:
            instance.load_settings(config_path)
            cls._initialization_errors.extend(instance.internal_errors)
            cls._is_configured = True
        except Exception as e:
            cls._initialization_errors.append(f"Unexpected error during SettingsManager initialization: {e}")
            raise

    @classmethod
    def get_initialization_errors(cls) -> list[str]:
        """Exposes initialization errors for testing/debugging."""
        errors = list(cls._initialization_errors)
        if cls._instance:
            errors.extend(cls._instance.internal_errors)
        return list(set(errors))

    @classmethod
    def reset(cls) -> None:
        """
        Reset the singleton instance and its configuration state.

        Primarily for testing.
        """
        cls._instance = None
        cls._initialization_errors.clear()
        cls._is_configured = False
