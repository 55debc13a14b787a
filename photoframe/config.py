"""
Configuration management for PhotoFrame.
Handles loading, environment overrides, validation, and defaults.
"""

import os
import yaml
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_CONFIG_PATHS = [
    "/etc/photoframe/config.yaml",
    os.path.expanduser("~/.config/photoframe/config.yaml"),
    "./config.yaml",
]

CACHE_MODES = ["random_page", "random_asset", "album"]


@dataclass
class ImmichConfig:
    """Immich server connection."""
    url: str = ""
    api_key: str = ""
    device_model: str = "iPhone 14 Pro"  # Empty to search all cameras
    timeout_seconds: int = 120


@dataclass
class CacheConfig:
    """Photo cache settings."""
    mode: str = "random_page"  # random_page, random_asset, album
    # Approximate library size in search pages; one cycle is pages * records_per_page
    pages_in_library: int = 85000
    records_per_page: int = 10
    album_id: str = ""
    refresh_interval_minutes: int = 5
    initial_retry_seconds: int = 5


@dataclass
class SlideshowConfig:
    """Slideshow page settings."""
    interval_seconds: int = 15


@dataclass
class WebConfig:
    """Web server settings."""
    port: int = 3000
    host: str = "0.0.0.0"


@dataclass
class PhotoFrameConfig:
    """Main configuration class."""
    immich: ImmichConfig = field(default_factory=ImmichConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    slideshow: SlideshowConfig = field(default_factory=SlideshowConfig)
    web: WebConfig = field(default_factory=WebConfig)

    # Runtime state (not persisted)
    config_path: Optional[str] = None


def _dict_to_dataclass(data: Dict[str, Any], cls: type) -> Any:
    """Convert a dictionary to a dataclass instance, handling nested dataclasses."""
    if data is None:
        return cls()

    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            continue

        field_type = field_types[key]

        if hasattr(field_type, '__dataclass_fields__'):
            kwargs[key] = _dict_to_dataclass(value, field_type)
        else:
            kwargs[key] = value

    return cls(**kwargs)


def _apply_env_overrides(config: PhotoFrameConfig, environ: Dict[str, str]) -> None:
    """Apply environment variables on top of the file settings."""
    if environ.get("IMMICH_URL"):
        config.immich.url = environ["IMMICH_URL"]
    if environ.get("IMMICH_API_KEY"):
        config.immich.api_key = environ["IMMICH_API_KEY"]
    if environ.get("DEVICE_MODEL"):
        config.immich.device_model = environ["DEVICE_MODEL"]
    if environ.get("PORT"):
        try:
            config.web.port = int(environ["PORT"])
        except ValueError:
            logger.warning(f"Ignoring invalid PORT: {environ['PORT']}")

    interval = environ.get("SLIDESHOW_INTERVAL")
    if interval:
        try:
            value = int(interval)
            if value > 0:
                config.slideshow.interval_seconds = value
        except ValueError:
            logger.warning(f"Ignoring invalid SLIDESHOW_INTERVAL: {interval}")


def load_config(config_path: Optional[str] = None,
                environ: Optional[Dict[str, str]] = None) -> PhotoFrameConfig:
    """
    Load configuration from a YAML file and the environment.

    Args:
        config_path: Path to config file. If None, searches default locations.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        PhotoFrameConfig instance with loaded or default values.
    """
    if config_path:
        paths_to_try = [config_path]
    else:
        paths_to_try = DEFAULT_CONFIG_PATHS

    config_data = {}
    found_path = None

    for path in paths_to_try:
        expanded_path = os.path.expanduser(path)
        if os.path.exists(expanded_path):
            try:
                with open(expanded_path, 'r') as f:
                    config_data = yaml.safe_load(f) or {}
                found_path = expanded_path
                logger.info(f"Loaded config from {expanded_path}")
                break
            except Exception as e:
                logger.warning(f"Failed to load config from {expanded_path}: {e}")

    if not found_path:
        logger.info("No config file found, using defaults")

    config = PhotoFrameConfig(
        immich=_dict_to_dataclass(config_data.get('immich'), ImmichConfig),
        cache=_dict_to_dataclass(config_data.get('cache'), CacheConfig),
        slideshow=_dict_to_dataclass(config_data.get('slideshow'), SlideshowConfig),
        web=_dict_to_dataclass(config_data.get('web'), WebConfig),
        config_path=found_path,
    )

    _apply_env_overrides(config, os.environ if environ is None else environ)

    return config


def config_to_dict(config: PhotoFrameConfig, redact: bool = True) -> Dict[str, Any]:
    """Convert config to dictionary for serialization."""
    def dataclass_to_dict(obj: Any) -> Any:
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                if field_name == 'config_path':
                    continue  # Skip runtime state
                value = getattr(obj, field_name)
                result[field_name] = dataclass_to_dict(value)
            return result
        elif isinstance(obj, list):
            return [dataclass_to_dict(item) for item in obj]
        elif isinstance(obj, dict):
            return {k: dataclass_to_dict(v) for k, v in obj.items()}
        else:
            return obj

    data = dataclass_to_dict(config)
    if redact and data["immich"].get("api_key"):
        data["immich"]["api_key"] = "***"
    return data


def validate_config(config: PhotoFrameConfig) -> List[str]:
    """
    Validate configuration and return list of errors.

    Returns:
        List of error messages. Empty if valid.
    """
    errors = []

    # Check Immich connection
    if not config.immich.url:
        errors.append("Immich URL is not set (immich.url or IMMICH_URL).")
    elif not (config.immich.url.startswith('http://') or config.immich.url.startswith('https://')):
        errors.append("Immich URL must start with http:// or https://")

    if not config.immich.api_key:
        errors.append("Immich API key is not set (immich.api_key or IMMICH_API_KEY).")

    if config.immich.timeout_seconds <= 0:
        errors.append("Immich timeout_seconds must be positive")

    # Check cache settings
    if config.cache.mode not in CACHE_MODES:
        errors.append(f"Cache mode must be one of: {CACHE_MODES}")

    if config.cache.pages_in_library < 1:
        errors.append("pages_in_library must be at least 1")

    if config.cache.records_per_page < 1:
        errors.append("records_per_page must be at least 1")

    if config.cache.mode == "album" and not config.cache.album_id:
        errors.append("Album mode requires cache.album_id")

    if config.cache.refresh_interval_minutes <= 0:
        errors.append("refresh_interval_minutes must be positive")

    # Check slideshow settings
    if config.slideshow.interval_seconds <= 0:
        errors.append("Slideshow interval_seconds must be positive")

    # Check web settings
    if config.web.port < 1 or config.web.port > 65535:
        errors.append("Web port must be between 1 and 65535")

    return errors


def missing_required(config: PhotoFrameConfig) -> List[str]:
    """Return the settings the server cannot start without."""
    missing = []
    if not config.immich.url:
        missing.append("IMMICH_URL")
    if not config.immich.api_key:
        missing.append("IMMICH_API_KEY")
    return missing
