"""Configuration management for toilet-tracker.

Handles loading configuration from TOML files, environment variables,
and command-line options with proper precedence.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "toilet-tracker" / "config.toml"
LOCAL_CONFIG_NAME = ".toilet-tracker.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "toilet-tracker"
DEFAULT_API_URL = "https://toilet-tracker-backend-1.onrender.com"
DEFAULT_GEOLOCATION_URL = "https://ipapi.co/json/"

GEOLOCATION_PROVIDERS = ("ip", "static", "none")


@dataclass
class ApiConfig:
    """Toilet Tracker API configuration."""

    url: str = DEFAULT_API_URL
    timeout: float = 30.0


@dataclass
class DataConfig:
    """Local storage configuration (session token, logs)."""

    directory: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)


@dataclass
class GeolocationConfig:
    """Device location lookup configuration."""

    provider: str = "ip"
    url: str = DEFAULT_GEOLOCATION_URL
    timeout: float = 15.0
    latitude: float | None = None
    longitude: float | None = None


@dataclass
class Config:
    """Main configuration container."""

    api: ApiConfig = field(default_factory=ApiConfig)
    data: DataConfig = field(default_factory=DataConfig)
    geolocation: GeolocationConfig = field(default_factory=GeolocationConfig)
    config_path: Path | None = None


def _get_env_value(key: str, default: str = "") -> str:
    """Get environment variable value."""
    return os.environ.get(key, default)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. Environment variables
    2. Configuration file
    3. Default values

    Without an explicit path, ``TOILET_TRACKER_CONFIG`` is consulted, then a
    ``.toilet-tracker.toml`` in the current directory, then the default
    location.

    Args:
        config_path: Path to configuration file. If None, uses default location.

    Returns:
        Populated Config object.
    """
    config = Config()

    if config_path is None:
        env_config = _get_env_value("TOILET_TRACKER_CONFIG")
        if env_config:
            config_path = Path(env_config)
        elif Path(LOCAL_CONFIG_NAME).exists():
            config_path = Path(LOCAL_CONFIG_NAME)
        else:
            config_path = DEFAULT_CONFIG_PATH

    config.config_path = config_path

    if config_path.exists():
        config = _load_from_file(config_path, config)

    config = _apply_env_overrides(config)

    return config


def _load_from_file(path: Path, config: Config) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to TOML file.
        config: Existing config to update.

    Returns:
        Updated Config object.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)

    if "api" in data:
        api = data["api"]
        config.api.url = api.get("url", config.api.url)
        config.api.timeout = float(api.get("timeout", config.api.timeout))

    if "data" in data:
        data_section = data["data"]
        if "directory" in data_section:
            config.data.directory = Path(data_section["directory"]).expanduser()

    if "geolocation" in data:
        geo = data["geolocation"]
        config.geolocation.provider = geo.get("provider", config.geolocation.provider)
        config.geolocation.url = geo.get("url", config.geolocation.url)
        config.geolocation.timeout = float(geo.get("timeout", config.geolocation.timeout))
        if "latitude" in geo:
            config.geolocation.latitude = float(geo["latitude"])
        if "longitude" in geo:
            config.geolocation.longitude = float(geo["longitude"])

    if config.geolocation.provider not in GEOLOCATION_PROVIDERS:
        raise ValueError(
            f"Unknown geolocation provider {config.geolocation.provider!r} "
            f"(expected one of: {', '.join(GEOLOCATION_PROVIDERS)})"
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to configuration.

    Args:
        config: Config to update.

    Returns:
        Updated Config object.
    """
    if api_url := _get_env_value("TOILET_TRACKER_API_URL"):
        config.api.url = api_url

    if data_dir := _get_env_value("TOILET_TRACKER_DATA_DIR"):
        config.data.directory = Path(data_dir)

    if provider := _get_env_value("TOILET_TRACKER_GEOLOCATION"):
        if provider not in GEOLOCATION_PROVIDERS:
            raise ValueError(f"Unknown geolocation provider {provider!r}")
        config.geolocation.provider = provider

    return config


def ensure_data_dir(config: Config) -> Path:
    """Ensure data directory exists and return its path.

    Args:
        config: Configuration with data directory setting.

    Returns:
        Path to data directory.
    """
    data_dir = config.data.directory.expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
