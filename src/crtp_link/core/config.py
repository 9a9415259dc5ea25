"""
Configuration management for the CRTP link client.
Loads configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.crtp_link.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "CRTP_"


@dataclass
class AppConfig:
    """Application configuration."""

    APP_NAME: str = "CRTP-Link"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8090


@dataclass
class LinkConfig:
    """UDP endpoint of the drone access point."""

    LINK_LOCAL_HOST: str = "0.0.0.0"
    LINK_LOCAL_PORT: int = 2399
    LINK_PEER_ADDRESS: str = "192.168.43.42"
    LINK_PEER_PORT: int = 2390


@dataclass
class HeartbeatConfig:
    """Heartbeat ping cadence and staleness window."""

    HEARTBEAT_INTERVAL_S: float = 1.0
    HEARTBEAT_STALENESS_S: float = 1.0


@dataclass
class TelemetryConfig:
    """Battery voltage sampling configuration."""

    TELEMETRY_VOLTAGE_PERIOD_S: float = 10.0
    TELEMETRY_CONFIG_TO_START_DELAY_S: float = 0.1
    TELEMETRY_START_TO_STOP_DELAY_S: float = 0.3
    TELEMETRY_AUTO_START_ON_CONNECT: bool = True


@dataclass
class HeightSensorConfig:
    """Height-sensor detection retry and timeout settings."""

    HEIGHT_SENSOR_ATTEMPTS: int = 3
    HEIGHT_SENSOR_ATTEMPT_GAP_S: float = 0.5
    HEIGHT_SENSOR_TIMEOUT_S: float = 5.0


@dataclass
class FlightConfig:
    """Command loop scaling and sequencing."""

    FLIGHT_COMMAND_RATE_HZ: float = 50.0
    FLIGHT_ARMING_PACKETS: int = 100
    FLIGHT_STOP_PACKETS: int = 5
    FLIGHT_MAX_ROLL_PITCH_DEG: float = 30.0
    FLIGHT_MAX_YAW_RATE_DPS: float = 200.0
    FLIGHT_MIN_THRUST: int = 1000
    FLIGHT_MAX_THRUST: int = 60000
    FLIGHT_HOVER_VELOCITY_SCALE: float = 0.6
    FLIGHT_HOVER_YAW_RATE_SCALE: float = 50.0
    FLIGHT_MIN_HEIGHT_M: float = 0.2
    FLIGHT_MAX_HEIGHT_M: float = 1.5
    FLIGHT_DEFAULT_HEIGHT_M: float = 0.3
    FLIGHT_LANDING_RATE_MPS: float = 0.3
    FLIGHT_LANDING_STEP_S: float = 0.1
    FLIGHT_LANDING_HOLD_S: float = 1.0
    FLIGHT_HIGH_LEVEL_ENABLE_DELAY_S: float = 0.2
    FLIGHT_EMERGENCY_RESTART_DELAY_S: float = 0.5


@dataclass
class LoggingConfig:
    """Logging configuration."""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE_PATH: str = "logs/crtp_link.log"
    LOG_FILE_MAX_BYTES: int = 10485760
    LOG_FILE_BACKUP_COUNT: int = 5
    LOG_ENABLE_CONSOLE: bool = True
    LOG_ENABLE_FILE: bool = False
    LOG_FRAME_TRACE: bool = False


@dataclass
class APIConfig:
    """API configuration."""

    API_CORS_ENABLED: bool = True
    API_CORS_ORIGINS: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class DevelopmentConfig:
    """Development settings."""

    DEV_HOT_RELOAD: bool = False
    DEV_DEBUG_MODE: bool = False


# Key prefix -> Config attribute name
_SECTION_PREFIXES: tuple[tuple[str, str], ...] = (
    ("APP_", "app"),
    ("LINK_", "link"),
    ("HEARTBEAT_", "heartbeat"),
    ("TELEMETRY_", "telemetry"),
    ("HEIGHT_SENSOR_", "height_sensor"),
    ("FLIGHT_", "flight"),
    ("LOG_", "logging"),
    ("API_", "api"),
    ("DEV_", "development"),
)


@dataclass
class Config:
    """Main configuration container."""

    app: AppConfig = field(default_factory=AppConfig)
    link: LinkConfig = field(default_factory=LinkConfig)
    heartbeat: HeartbeatConfig = field(default_factory=HeartbeatConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    height_sensor: HeightSensorConfig = field(default_factory=HeightSensorConfig)
    flight: FlightConfig = field(default_factory=FlightConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: APIConfig = field(default_factory=APIConfig)
    development: DevelopmentConfig = field(default_factory=DevelopmentConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {name: dict(getattr(self, name).__dict__) for _, name in _SECTION_PREFIXES}


class ConfigLoader:
    """Configuration loader that handles YAML files and environment variables."""

    def __init__(self, config_path: str | Path | None = None):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to configuration file. Defaults to profile-based selection.
        """
        if config_path is None:
            # Project root is four levels up from this file
            project_root = Path(__file__).parent.parent.parent.parent

            profile = os.getenv("CRTP_CONFIG_PROFILE", "default")
            if profile in ["development", "dev"]:
                config_file = "development.yaml"
            else:
                config_file = "default.yaml"

            self.config_path = project_root / "config" / config_file
            logger.info(f"Selected configuration profile: {profile} -> {config_file}")
        else:
            self.config_path = Path(config_path)
        self.config = Config()

    def load(self) -> Config:
        """
        Load configuration from file and environment variables.

        Environment variables override file configuration.

        Returns:
            Loaded configuration object

        Raises:
            ConfigurationError: If the file is unreadable or values are invalid
        """
        if self.config_path.exists():
            try:
                with open(self.config_path) as f:
                    yaml_config = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to load configuration from {self.config_path}: {e}")
                raise ConfigurationError(str(e)) from e

            if not isinstance(yaml_config, dict):
                raise ConfigurationError(
                    f"Configuration file {self.config_path} must contain a mapping"
                )
            self._apply_yaml_config(yaml_config)
            logger.info(f"Loaded configuration from {self.config_path}")
        else:
            logger.warning(f"Configuration file {self.config_path} not found, using defaults")

        self._apply_env_overrides()
        self._validate_config()

        return self.config

    def _section_for_key(self, key: str) -> Any | None:
        """Return the config section owning a flat key, by prefix."""
        for prefix, name in _SECTION_PREFIXES:
            if key.startswith(prefix):
                return getattr(self.config, name)
        return None

    def _apply_yaml_config(self, yaml_config: dict[str, Any]) -> None:
        """Apply configuration from YAML dictionary with proper type conversion."""
        for key, value in yaml_config.items():
            section = self._section_for_key(key)
            if section is None:
                logger.warning(f"Unknown configuration key: {key}")
                continue
            if isinstance(value, list):
                value = ",".join(str(v) for v in value)
            self._set_config_value(section, key, str(value))

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            config_key = env_key[len(ENV_PREFIX) :]
            if config_key == "CONFIG_PROFILE":
                continue

            section = self._section_for_key(config_key)
            if section is not None:
                self._set_config_value(section, config_key, env_value)

    def _set_config_value(self, config_section: Any, key: str, value: str) -> None:
        """
        Set configuration value with appropriate type conversion.

        Args:
            config_section: Configuration section object
            key: Configuration key
            value: String value from YAML or environment
        """
        if not hasattr(config_section, key):
            logger.warning(f"Unknown configuration key: {key}")
            return

        current_value = getattr(config_section, key)

        converted_value: Any
        if isinstance(current_value, bool):
            converted_value = value.lower() in ("true", "1", "yes", "on")
        elif isinstance(current_value, int):
            try:
                converted_value = int(value)
            except ValueError:
                logger.error(f"Invalid integer value for {key}: {value}")
                return
        elif isinstance(current_value, float):
            try:
                converted_value = float(value)
            except ValueError:
                logger.error(f"Invalid float value for {key}: {value}")
                return
        elif isinstance(current_value, list):
            converted_value = [v.strip() for v in value.split(",") if v.strip()]
        else:
            converted_value = value

        setattr(config_section, key, converted_value)
        logger.debug(f"Set {key} = {converted_value}")

    def _validate_config(self) -> None:
        """Validate configuration after all loading is complete."""
        link = self.config.link
        for name in ("LINK_LOCAL_PORT", "LINK_PEER_PORT"):
            port = getattr(link, name)
            if not (0 <= port <= 65535):
                raise ConfigurationError(f"{name} must be between 0 and 65535, got {port}")

        positive = {
            "HEARTBEAT_INTERVAL_S": self.config.heartbeat.HEARTBEAT_INTERVAL_S,
            "HEARTBEAT_STALENESS_S": self.config.heartbeat.HEARTBEAT_STALENESS_S,
            "TELEMETRY_VOLTAGE_PERIOD_S": self.config.telemetry.TELEMETRY_VOLTAGE_PERIOD_S,
            "HEIGHT_SENSOR_TIMEOUT_S": self.config.height_sensor.HEIGHT_SENSOR_TIMEOUT_S,
            "FLIGHT_COMMAND_RATE_HZ": self.config.flight.FLIGHT_COMMAND_RATE_HZ,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")

        if self.config.height_sensor.HEIGHT_SENSOR_ATTEMPTS < 1:
            raise ConfigurationError("HEIGHT_SENSOR_ATTEMPTS must be at least 1")

        flight = self.config.flight
        if not (0 <= flight.FLIGHT_MIN_THRUST < flight.FLIGHT_MAX_THRUST <= 65535):
            raise ConfigurationError(
                "Thrust bounds must satisfy 0 <= min < max <= 65535: "
                f"min({flight.FLIGHT_MIN_THRUST}) max({flight.FLIGHT_MAX_THRUST})"
            )
        if not (0 < flight.FLIGHT_MIN_HEIGHT_M < flight.FLIGHT_MAX_HEIGHT_M):
            raise ConfigurationError(
                "Height bounds must satisfy 0 < min < max: "
                f"min({flight.FLIGHT_MIN_HEIGHT_M}) max({flight.FLIGHT_MAX_HEIGHT_M})"
            )


# Global configuration instance
_config: Config | None = None


def get_config(config_path: str | Path | None = None) -> Config:
    """
    Get configuration instance (singleton pattern).

    Args:
        config_path: Optional path to configuration file

    Returns:
        Configuration object
    """
    global _config

    if _config is None:
        loader = ConfigLoader(config_path)
        _config = loader.load()

    return _config


def reload_config(config_path: str | Path | None = None) -> Config:
    """
    Reload configuration from file and environment.

    Args:
        config_path: Optional path to configuration file

    Returns:
        Reloaded configuration object
    """
    global _config

    loader = ConfigLoader(config_path)
    _config = loader.load()

    return _config
