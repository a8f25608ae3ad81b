#!/usr/bin/env python3

"""
Settings for XPlane-Arduino-Bridge
Configuration management for the application.
Handles loading, saving, and accessing settings.

Part of the XPlane-Arduino-Bridge project.
"""

import json
import os
import logging
from typing import Dict, Any, Optional, List
from pathlib import Path
import dataclasses
from dataclasses import dataclass, field

from dotenv import find_dotenv, load_dotenv

from xplane_arduino_bridge import constants

logger = logging.getLogger('settings')


@dataclass
class XPlaneSettings:
    """X-Plane web API settings"""
    host: str = constants.DEFAULT_XPLANE_HOST
    port: int = constants.DEFAULT_XPLANE_PORT
    api_path: str = constants.DEFAULT_API_PATH
    reconnect_delay: float = constants.DEFAULT_RECONNECT_DELAY
    request_timeout: float = constants.DEFAULT_REQUEST_TIMEOUT  # 0 = no timeout

    @property
    def rest_url(self) -> str:
        return f"http://{self.host}:{self.port}{self.api_path}"

    @property
    def websocket_url(self) -> str:
        return f"ws://{self.host}:{self.port}{self.api_path}"


@dataclass
class SerialSettings:
    """Serial port settings for the Arduino panel"""
    enabled: bool = True
    port: str = ""  # empty = autodiscover
    baudrate: int = constants.DEFAULT_SERIAL_BAUDRATE
    timeout: float = constants.DEFAULT_SERIAL_TIMEOUT
    reconnect_delay: float = constants.DEFAULT_RECONNECT_DELAY
    reset_delay: float = constants.ARDUINO_RESET_DELAY


@dataclass
class LogSettings:
    """Logging settings"""
    level: str = "INFO"
    log_to_file: bool = False
    log_file_path: str = ""
    max_log_files: int = 5
    max_log_size_mb: int = 10


@dataclass
class ApplicationSettings:
    """Main application settings container"""
    xplane: XPlaneSettings = field(default_factory=XPlaneSettings)
    serial: SerialSettings = field(default_factory=SerialSettings)
    logging: LogSettings = field(default_factory=LogSettings)
    aircraft: str = constants.DEFAULT_AIRCRAFT
    version: str = "1.0.0"


class SettingsEncoder(json.JSONEncoder):
    """Custom JSON encoder for dataclasses"""
    def default(self, obj):
        if dataclasses.is_dataclass(obj):
            return dataclasses.asdict(obj)
        return super().default(obj)


# Environment variable -> (section, key). Section None targets a top-level field.
ENV_OVERRIDES = {
    "XPLANE_HOST": ("xplane", "host"),
    "XPLANE_PORT": ("xplane", "port"),
    "ARDUINO_PORT": ("serial", "port"),
    "ARDUINO_BAUD": ("serial", "baudrate"),
    "ACTIVE_PLANE": (None, "aircraft"),
    "LOG_LEVEL": ("logging", "level"),
}


def coerce_value(current_value: Any, value: Any) -> Any:
    """
    Convert value to the type of current_value.

    Raises:
        ValueError, TypeError: If the value can't be converted
    """
    target_type = type(current_value)
    if target_type is bool and isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if target_type is bool and isinstance(value, int):
        # Convert int to bool (0=False, non-zero=True)
        return bool(value)
    if value is None or isinstance(value, target_type):
        return value
    return target_type(value)


class Settings:
    """
    Settings manager for XPlane-Arduino-Bridge.
    Handles loading, saving, and accessing application settings.
    """
    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize settings manager.

        Args:
            config_file: Path to configuration file (optional)
        """
        # Default settings
        self.settings = ApplicationSettings()

        # Configuration file path
        if config_file:
            self.config_file = config_file
        else:
            # Default to user's home directory
            self.config_file = os.path.join(
                str(Path.home()),
                '.xplane_arduino_bridge',
                'config.json'
            )

        # Load settings
        self.load()

    def load(self, config_file: Optional[str] = None) -> bool:
        """
        Load settings from file.

        Args:
            config_file: Override configuration file path

        Returns:
            bool: True if settings were loaded successfully
        """
        if config_file:
            self.config_file = config_file

        try:
            # Check if file exists
            if not os.path.exists(self.config_file):
                logger.info(f"Configuration file not found at {self.config_file}")
                self._create_default_config()
                return True

            # Load from file
            with open(self.config_file, 'r') as f:
                data = json.load(f)

            if not isinstance(data, dict):
                logger.error(f"Config file {self.config_file} must contain a JSON object")
                return False

            # Update settings with loaded data
            self._update_from_dict(data)

            logger.info(f"Settings loaded from {self.config_file}")
            return True

        except json.JSONDecodeError as e:
            logger.error(f"Error parsing config file: {e}")
            return False

        except OSError as e:
            logger.error(f"Error reading config file: {e}")
            return False

    def save(self, config_file: Optional[str] = None) -> bool:
        """
        Save settings to file.

        Args:
            config_file: Override configuration file path

        Returns:
            bool: True if settings were saved successfully
        """
        if config_file:
            self.config_file = config_file

        try:
            self._ensure_directory()

            with open(self.config_file, 'w') as f:
                json.dump(self.settings, f, indent=2, cls=SettingsEncoder)

            logger.info(f"Settings saved to {self.config_file}")
            return True

        except OSError as e:
            logger.error(f"Error writing config file: {e}")
            return False

    def _ensure_directory(self) -> None:
        directory = os.path.dirname(self.config_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _create_default_config(self) -> None:
        """Create default configuration file."""
        try:
            self._ensure_directory()

            with open(self.config_file, 'w') as f:
                json.dump(self.settings, f, indent=2, cls=SettingsEncoder)

            logger.info(f"Default configuration created at {self.config_file}")

        except OSError as e:
            logger.error(f"Error creating default config: {e}")

    def _update_from_dict(self, data: Dict[str, Any]) -> None:
        """
        Update settings from dictionary.

        Args:
            data: Dictionary with settings data
        """
        # Helper function to recursively update dataclasses
        def update_dataclass(obj, data_dict):
            for key, value in data_dict.items():
                if not hasattr(obj, key):
                    logger.warning(f"Ignoring unknown setting: {key}")
                    continue

                current_value = getattr(obj, key)
                # If it's a dataclass and value is a dict, update recursively
                if dataclasses.is_dataclass(current_value) and isinstance(value, dict):
                    update_dataclass(current_value, value)
                else:
                    try:
                        setattr(obj, key, coerce_value(current_value, value))
                    except (ValueError, TypeError, AttributeError):
                        logger.warning(f"Could not convert {key}={value} to {type(current_value)}")

        update_dataclass(self.settings, data)

    def apply_env_overrides(self, env_file: Optional[str] = None) -> List[str]:
        """
        Override settings from environment variables (and a .env file).

        Args:
            env_file: Path to a .env file (defaults to searching from the cwd)

        Returns:
            list: Names of the variables that were applied
        """
        load_dotenv(env_file or find_dotenv(usecwd=True))

        applied = []
        for variable, (section, key) in ENV_OVERRIDES.items():
            value = os.getenv(variable)
            if value is None or value == "":
                continue

            if section is None:
                self.settings.aircraft = value
                applied.append(variable)
            elif self.set(section, key, value):
                applied.append(variable)
            else:
                logger.warning(f"Ignoring invalid value for {variable}: {value}")

        if applied:
            logger.info(f"Settings overridden from environment: {', '.join(applied)}")
        return applied

    def get(self, section: str, key: Optional[str] = None) -> Any:
        """
        Get a setting value.

        Args:
            section: Section name (xplane, serial, logging)
            key: Setting key (if None, returns entire section)

        Returns:
            Setting value or None if not found
        """
        if hasattr(self.settings, section):
            section_obj = getattr(self.settings, section)
            if key is None:
                return section_obj
            elif hasattr(section_obj, key):
                return getattr(section_obj, key)

        return None

    def set(self, section: str, key: str, value: Any) -> bool:
        """
        Set a setting value.

        Args:
            section: Section name (xplane, serial, logging)
            key: Setting key
            value: New value

        Returns:
            bool: True if setting was changed
        """
        section_obj = getattr(self.settings, section, None)
        if not dataclasses.is_dataclass(section_obj) or not hasattr(section_obj, key):
            return False

        try:
            setattr(section_obj, key, coerce_value(getattr(section_obj, key), value))
            return True
        except (ValueError, TypeError) as e:
            logger.error(f"Error setting {section}.{key}={value}: {e}")

        return False

    def reset_to_defaults(self) -> None:
        """Reset all settings to default values."""
        self.settings = ApplicationSettings()
        logger.info("Settings reset to defaults")

    def apply_logging_settings(self) -> None:
        """Apply logging settings to the Python logging system."""
        log_settings = self.settings.logging

        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL
        }
        level = level_map.get(log_settings.level.upper(), logging.INFO)

        from xplane_arduino_bridge.core.log_config import configure_logging

        configure_logging(
            level=level,
            log_to_file=log_settings.log_to_file,
            log_file_path=log_settings.log_file_path or None,
            max_log_files=log_settings.max_log_files,
            max_log_size_mb=log_settings.max_log_size_mb
        )

        logger.info(f"Logging level set to {log_settings.level}")

    def validate(self) -> Dict[str, List[str]]:
        """
        Validate settings for consistency and correctness.

        Returns:
            dict: Dictionary of validation errors by section
        """
        errors = {}

        # Validate X-Plane settings
        xplane_errors = []
        if not self.settings.xplane.host:
            xplane_errors.append("X-Plane host cannot be empty")
        if self.settings.xplane.port <= 0 or self.settings.xplane.port > 65535:
            xplane_errors.append("X-Plane port must be between 1 and 65535")
        if not self.settings.xplane.api_path.startswith("/"):
            xplane_errors.append("API path must start with '/'")
        if self.settings.xplane.reconnect_delay <= 0:
            xplane_errors.append("Reconnect delay must be positive")
        if self.settings.xplane.request_timeout < 0:
            xplane_errors.append("Request timeout cannot be negative")
        if xplane_errors:
            errors["xplane"] = xplane_errors

        # Validate serial settings
        serial_errors = []
        if self.settings.serial.enabled:
            if self.settings.serial.baudrate <= 0:
                serial_errors.append("Baudrate must be positive")
            if self.settings.serial.timeout <= 0:
                serial_errors.append("Timeout must be positive")
            if self.settings.serial.reconnect_delay <= 0:
                serial_errors.append("Reconnect delay must be positive")
            if self.settings.serial.reset_delay < 0:
                serial_errors.append("Reset delay cannot be negative")
        if serial_errors:
            errors["serial"] = serial_errors

        # Validate logging settings
        logging_errors = []
        if self.settings.logging.log_to_file and not self.settings.logging.log_file_path:
            logging_errors.append("Log file path must be specified when logging to file")
        if self.settings.logging.max_log_files <= 0:
            logging_errors.append("Maximum log files must be positive")
        if self.settings.logging.max_log_size_mb <= 0:
            logging_errors.append("Maximum log size must be positive")
        if logging_errors:
            errors["logging"] = logging_errors

        # Validate aircraft
        from xplane_arduino_bridge.aircraft import SUPPORTED_AIRCRAFT
        if self.settings.aircraft not in SUPPORTED_AIRCRAFT:
            errors["aircraft"] = [f"Unsupported aircraft: {self.settings.aircraft}"]

        return errors
