"""Configuration loader for Storefront.

Loads configuration from TOML files. Environment variables can override any
configuration value.
"""

import logging
import os
from pathlib import Path
from typing import Any

from storefront.config.schema import StorefrontConfig

logger = logging.getLogger(__name__)

# Try to import tomllib (Python 3.11+) or fall back to tomli
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found]

_INT_KEYS = {
    "port",
    "min_pool_size",
    "max_pool_size",
    "max_upload_mb",
    "batch_size",
    "row_concurrency",
    "reconcile_concurrency",
    "consistency_retries",
    "image_max_mb",
    "ttl_seconds",
}
_FLOAT_KEYS = {"consistency_delay_seconds", "image_timeout_seconds", "timeout_seconds"}
_BOOL_KEYS = {"debug"}
_LIST_KEYS = {"store_currencies", "cors_origins"}


def get_config_search_paths() -> list[Path]:
    """Get the list of paths to search for configuration files.

    Returns paths in priority order (first found wins):
    1. ./config.toml (project root - for development)
    2. ~/.config/storefront/config.toml (user config)
    3. /etc/storefront/config.toml (system config)
    """
    return [
        Path.cwd() / "config.toml",
        Path.home() / ".config" / "storefront" / "config.toml",
        Path("/etc/storefront/config.toml"),
    ]


def find_config_file() -> Path | None:
    """Find the first existing config file from search paths."""
    for path in get_config_search_paths():
        if path.exists() and path.is_file():
            logger.debug("Found config file: %s", path)
            return path
    return None


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _convert(key: str, value: str) -> Any:
    if key in _INT_KEYS:
        return int(value)
    if key in _FLOAT_KEYS:
        return float(value)
    if key in _BOOL_KEYS:
        return value.lower() in ("true", "1", "yes")
    if key in _LIST_KEYS:
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


def apply_env_overrides(config_dict: dict[str, Any], prefix: str = "STOREFRONT") -> None:
    """Apply environment variable overrides to configuration dictionary.

    Environment variables are mapped as follows:
    - STOREFRONT_SERVER_PUBLIC_URL -> config_dict["server"]["public_url"]
    - STOREFRONT_IMPORT_BATCH_SIZE -> config_dict["import"]["batch_size"]
    - etc.

    Note: This modifies config_dict in place.
    """
    env_mappings = {
        # Server
        f"{prefix}_SERVER_HOST": ("server", "host"),
        f"{prefix}_SERVER_PORT": ("server", "port"),
        f"{prefix}_SERVER_DEBUG": ("server", "debug"),
        f"{prefix}_SERVER_PUBLIC_URL": ("server", "public_url"),
        f"{prefix}_SERVER_CORS_ORIGINS": ("server", "cors_origins"),
        f"{prefix}_DEBUG": ("server", "debug"),  # Shorthand
        "BACKEND_URL": ("server", "public_url"),  # Common deployment name
        # Database
        f"{prefix}_DATABASE_MONGODB_URL": ("database", "mongodb_url"),
        f"{prefix}_DATABASE_MONGODB_DATABASE": ("database", "mongodb_database"),
        f"{prefix}_MONGODB_URL": ("database", "mongodb_url"),  # Shorthand
        # Storage
        f"{prefix}_STORAGE_DATA_DIR": ("storage", "data_dir"),
        f"{prefix}_STORAGE_MAX_UPLOAD_MB": ("storage", "max_upload_mb"),
        # Import
        f"{prefix}_IMPORT_BATCH_SIZE": ("import", "batch_size"),
        f"{prefix}_IMPORT_ROW_CONCURRENCY": ("import", "row_concurrency"),
        f"{prefix}_IMPORT_RECONCILE_CONCURRENCY": ("import", "reconcile_concurrency"),
        f"{prefix}_IMPORT_CONSISTENCY_RETRIES": ("import", "consistency_retries"),
        f"{prefix}_IMPORT_CONSISTENCY_DELAY_SECONDS": ("import", "consistency_delay_seconds"),
        f"{prefix}_IMPORT_IMAGE_TIMEOUT_SECONDS": ("import", "image_timeout_seconds"),
        f"{prefix}_IMPORT_IMAGE_MAX_MB": ("import", "image_max_mb"),
        f"{prefix}_IMPORT_STORE_CURRENCIES": ("import", "store_currencies"),
        # Exchange rates
        f"{prefix}_EXCHANGE_RATES_URL": ("exchange_rates", "url"),
        f"{prefix}_EXCHANGE_RATES_TIMEOUT_SECONDS": ("exchange_rates", "timeout_seconds"),
        f"{prefix}_EXCHANGE_RATES_TTL_SECONDS": ("exchange_rates", "ttl_seconds"),
    }

    for env_var, path in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            section, key = path
            config_dict.setdefault(section, {})
            config_dict[section][key] = _convert(key, value)


def load_config(config_file: Path | None = None) -> StorefrontConfig:
    """Load configuration from TOML file with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.

    Returns:
        StorefrontConfig instance with all settings loaded.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info("Loading config from: %s", config_file)
        config_dict = load_toml_file(config_file)
    else:
        logger.info("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)

    return StorefrontConfig(**config_dict)
