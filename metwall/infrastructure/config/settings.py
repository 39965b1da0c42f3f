"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.metwall/config.yaml). Typed accessors turn the
flat key space into the settings objects each component is built from.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Dict

import yaml
from dotenv import load_dotenv

from metwall.infrastructure.cache.durable_store import DEFAULT_STORE_DIR

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".metwall"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "METWALL_"

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")

def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML sections into dotted keys ('scheduler.min_gap_s')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{full_key}."))
        else:
            flat[full_key] = value
    return flat

def _coerce(value: str) -> Any:
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (METWALL_SCHEDULER_MIN_GAP_S or SCHEDULER_MIN_GAP_S)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, dotted for nested sections
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    for candidate in (ENV_PREFIX + env_key, env_key):
        if candidate in os.environ:
            return _coerce(os.environ[candidate])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")

# --- Typed Settings ---

@dataclass(frozen=True)
class SchedulerSettings:
    max_concurrency: int = 2
    min_gap_s: float = 0.22

@dataclass(frozen=True)
class RetrySettings:
    timeout_s: float = 12.0
    max_retries: int = 4
    initial_backoff_s: float = 0.5
    backoff_factor: float = 2.0
    jitter_s: float = 0.25

@dataclass(frozen=True)
class CacheSettings:
    store_dir: Path = DEFAULT_STORE_DIR
    store_key: str = "mcb_met_object_cache_v1"
    debounce_s: float = 0.6

@dataclass(frozen=True)
class ImageQueueSettings:
    max_concurrency: int = 4

@dataclass(frozen=True)
class ProxySettings:
    port: int = 3000
    base_url: Optional[str] = None

def get_scheduler_settings() -> SchedulerSettings:
    defaults = SchedulerSettings()
    return SchedulerSettings(
        max_concurrency=int(get_config('scheduler.max_concurrency', defaults.max_concurrency)),
        min_gap_s=float(get_config('scheduler.min_gap_s', defaults.min_gap_s)),
    )

def get_retry_settings() -> RetrySettings:
    defaults = RetrySettings()
    return RetrySettings(
        timeout_s=float(get_config('retry.timeout_s', defaults.timeout_s)),
        max_retries=int(get_config('retry.max_retries', defaults.max_retries)),
        initial_backoff_s=float(get_config('retry.initial_backoff_s', defaults.initial_backoff_s)),
        backoff_factor=float(get_config('retry.backoff_factor', defaults.backoff_factor)),
        jitter_s=float(get_config('retry.jitter_s', defaults.jitter_s)),
    )

def get_cache_settings() -> CacheSettings:
    defaults = CacheSettings()
    return CacheSettings(
        store_dir=Path(str(get_config('cache.store_dir', defaults.store_dir))).expanduser(),
        store_key=str(get_config('cache.store_key', defaults.store_key)),
        debounce_s=float(get_config('cache.debounce_s', defaults.debounce_s)),
    )

def get_image_queue_settings() -> ImageQueueSettings:
    defaults = ImageQueueSettings()
    return ImageQueueSettings(
        max_concurrency=int(get_config('images.max_concurrency', defaults.max_concurrency)),
    )

def get_proxy_settings() -> ProxySettings:
    base_url = get_config('proxy.base_url')
    return ProxySettings(
        port=int(get_config('proxy.port', ProxySettings.port)),
        base_url=str(base_url) if base_url else None,
    )
