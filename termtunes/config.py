"""
Configuration management for termtunes.
"""
import json
import os
import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .logging_config import ConfigurationError, FilesystemError, get_logger

logger = get_logger('config')

CONFIG_NAME = "termtunes"


def _home() -> Path:
    """Return the user's home directory or fail hard."""
    try:
        return Path.home()
    except (KeyError, RuntimeError) as e:
        raise FilesystemError(f"Cannot find home directory: {e}") from e


def _default_log_file() -> str:
    xdg_state = os.environ.get("XDG_STATE_HOME")
    base = Path(xdg_state) if xdg_state else _home() / ".local" / "state"
    return str(base / CONFIG_NAME / f"{CONFIG_NAME}.log")


@dataclass
class AppConfig:
    """Application configuration settings."""

    # Music library
    directories: List[str] = field(default_factory=lambda: ["~/Music"])

    # Input handling
    volume_step: int = 2
    seek_seconds: int = 5
    debounce_ms: int = 100

    # Playback
    tick_ms: int = 100
    sample_rate: int = 48000

    # UI settings
    status_seconds: float = 1.0
    mouse: bool = True

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[str] = field(default_factory=_default_log_file)


def config_search_paths() -> List[Path]:
    """Candidate config files, most specific first."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    config_dir = Path(xdg_config) if xdg_config else _home() / ".config"
    config_dir = config_dir / CONFIG_NAME
    return [
        config_dir / f"{CONFIG_NAME}.toml",
        config_dir / f"{CONFIG_NAME}.json",
        _home() / f".{CONFIG_NAME}.json",
    ]


def find_config_file() -> Optional[Path]:
    """Return the first existing config file, if any."""
    for path in config_search_paths():
        if path.is_file():
            return path
    return None


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path if config_path is not None else find_config_file()
        self.config: AppConfig = AppConfig()
        self._load_config()

    def _read(self, path: Path) -> Dict[str, Any]:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

        if path.suffix == ".toml":
            return tomllib.loads(raw.decode("utf-8"))
        return json.loads(raw)

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self.config_path is None:
            logger.info("No config file found, using defaults")
            return
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            return

        try:
            data = self._read(self.config_path)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to parse config {self.config_path}: {e}")
            logger.info("Using default configuration")
            return

        if not isinstance(data, dict):
            logger.error(f"Config root must be a table/object, got {type(data).__name__}")
            return

        self._apply_config_data(data)
        logger.info(f"Loaded configuration from {self.config_path}")

    def _apply_config_data(self, data: Dict[str, Any]) -> None:
        """Apply configuration data to AppConfig object."""
        types = {f.name: f for f in fields(AppConfig)}
        defaults = AppConfig()
        for key, value in data.items():
            if key not in types:
                logger.warning(f"Unknown config key ignored: {key}")
                continue
            expected = getattr(defaults, key)
            if key == "directories":
                if isinstance(value, str):
                    value = [value]
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    logger.warning(f"Invalid config value for {key}: {value!r}")
                    continue
            elif key == "log_file":
                if value is not None and not isinstance(value, str):
                    logger.warning(f"Invalid config value for {key}: {value!r}")
                    continue
            elif isinstance(expected, bool):
                if not isinstance(value, bool):
                    logger.warning(f"Invalid config value for {key}: {value!r}")
                    continue
            elif isinstance(expected, (int, float)):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    logger.warning(f"Invalid config value for {key}: {value!r}")
                    continue
                value = type(expected)(value)
            elif not isinstance(value, type(expected)):
                logger.warning(f"Invalid config value for {key}: {value!r}")
                continue
            setattr(self.config, key, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return getattr(self.config, key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        if hasattr(self.config, key):
            setattr(self.config, key, value)
            logger.debug(f"Config updated: {key} = {value}")

    def validate_config(self) -> bool:
        """Validate current configuration."""
        issues = []

        if not self.config.directories:
            issues.append("No music directories configured")

        if not (1 <= self.config.volume_step <= 128):
            issues.append(f"Volume step must be 1-128, got {self.config.volume_step}")

        if not (1 <= self.config.seek_seconds <= 600):
            issues.append(f"Seek seconds must be 1-600, got {self.config.seek_seconds}")

        if not (10 <= self.config.debounce_ms <= 2000):
            issues.append(f"Debounce window must be 10-2000 ms, got {self.config.debounce_ms}")

        if not (10 <= self.config.tick_ms <= 1000):
            issues.append(f"Tick interval must be 10-1000 ms, got {self.config.tick_ms}")

        if self.config.sample_rate not in (22050, 32000, 44100, 48000, 88200, 96000):
            issues.append(f"Unsupported sample rate: {self.config.sample_rate}")

        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.config.log_level.upper() not in valid_levels:
            issues.append(f"Invalid log level: {self.config.log_level}")

        if issues:
            logger.warning(f"Configuration validation issues: {issues}")
            return False

        return True

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self.config = AppConfig()
        logger.info("Configuration reset to defaults")

    def get_directories(self) -> List[Path]:
        """Get the expanded scan roots."""
        _home()
        return [Path(d).expanduser() for d in self.config.directories]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self.config)


def load_config(config_path: Optional[Path] = None) -> ConfigManager:
    """Load configuration and return manager."""
    return ConfigManager(config_path)
