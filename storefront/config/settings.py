"""Global settings instance for Storefront.

The settings object provides a flat interface over the structured
configuration loaded from config.toml and environment overrides.
"""

import logging
from pathlib import Path

from storefront.config.loader import load_config
from storefront.config.schema import StorefrontConfig

logger = logging.getLogger(__name__)


class Settings:
    """Flat accessor over the structured StorefrontConfig."""

    def __init__(self, config: StorefrontConfig | None = None):
        """Initialize settings.

        Args:
            config: Optional StorefrontConfig instance. If not provided, loads from file.
        """
        self._config = config or load_config()

    @property
    def config(self) -> StorefrontConfig:
        """Get the full configuration object."""
        return self._config

    # Application
    @property
    def app_name(self) -> str:
        return self._config.app_name

    @property
    def debug(self) -> bool:
        return self._config.server.debug

    # Server
    @property
    def host(self) -> str:
        return self._config.server.host

    @property
    def port(self) -> int:
        return self._config.server.port

    @property
    def public_url(self) -> str:
        return self._config.server.public_url.rstrip("/")

    @property
    def cors_origins(self) -> list[str]:
        return self._config.server.cors_origins

    # Database
    @property
    def mongodb_url(self) -> str:
        return self._config.database.mongodb_url

    @property
    def mongodb_database(self) -> str:
        return self._config.database.mongodb_database

    @property
    def min_pool_size(self) -> int:
        return self._config.database.min_pool_size

    @property
    def max_pool_size(self) -> int:
        return self._config.database.max_pool_size

    # Storage
    @property
    def image_storage_path(self) -> Path:
        return self._config.storage.images_dir

    @property
    def max_upload_size_bytes(self) -> int:
        return self._config.storage.max_upload_bytes

    # Import
    @property
    def import_batch_size(self) -> int:
        return self._config.import_.batch_size

    @property
    def import_row_concurrency(self) -> int:
        return self._config.import_.row_concurrency

    @property
    def import_reconcile_concurrency(self) -> int:
        return self._config.import_.reconcile_concurrency

    @property
    def consistency_retries(self) -> int:
        return self._config.import_.consistency_retries

    @property
    def consistency_delay_seconds(self) -> float:
        return self._config.import_.consistency_delay_seconds

    @property
    def image_timeout_seconds(self) -> float:
        return self._config.import_.image_timeout_seconds

    @property
    def image_max_bytes(self) -> int:
        return self._config.import_.image_max_bytes

    @property
    def store_currencies(self) -> list[str]:
        return [code.lower() for code in self._config.import_.store_currencies]

    # Exchange rates
    @property
    def exchange_rate_url(self) -> str:
        return self._config.exchange_rates.url

    @property
    def exchange_rate_timeout_seconds(self) -> float:
        return self._config.exchange_rates.timeout_seconds

    @property
    def exchange_rate_ttl_seconds(self) -> int:
        return self._config.exchange_rates.ttl_seconds


# Global settings instance - lazily initialized
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    The settings are loaded once and cached for subsequent calls.

    Returns:
        The global Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance.

    This is primarily useful for testing to reload configuration.
    """
    global _settings
    _settings = None


class _SettingsProxy:
    """Proxy object that lazily loads settings on first access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)

    def __repr__(self) -> str:
        return repr(get_settings())


settings = _SettingsProxy()
