"""Pydantic models for Storefront configuration.

These models define the structure of the config.toml file.
"""

from pathlib import Path

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 9000
    debug: bool = False
    # Externally resolvable origin of this backend, used for rehosted image URLs
    public_url: str = "http://localhost:9000"
    cors_origins: list[str] = []


class DatabaseConfig(BaseModel):
    """MongoDB database configuration."""

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "storefront"
    min_pool_size: int = 10
    max_pool_size: int = 100


class StorageConfig(BaseModel):
    """File storage configuration."""

    data_dir: Path = Field(default_factory=lambda: Path("data"))
    max_upload_mb: int = 10

    @property
    def images_dir(self) -> Path:
        """Get the images directory path."""
        return self.data_dir / "images"

    @property
    def max_upload_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024


class ImportConfig(BaseModel):
    """Bulk product import configuration."""

    batch_size: int = Field(default=200, ge=1)
    row_concurrency: int = Field(default=8, ge=1)
    reconcile_concurrency: int = Field(default=10, ge=1)
    # Inventory links are created asynchronously downstream
    consistency_retries: int = Field(default=3, ge=0)
    consistency_delay_seconds: float = Field(default=1.0, ge=0)
    image_timeout_seconds: float = 30.0
    image_max_mb: int = 20
    store_currencies: list[str] = Field(default_factory=lambda: ["usd", "eur", "gbp", "inr"])

    @property
    def image_max_bytes(self) -> int:
        """Get the image download ceiling in bytes."""
        return self.image_max_mb * 1024 * 1024


class ExchangeRateConfig(BaseModel):
    """Exchange rate provider configuration."""

    url: str = "https://api.exchangerate-api.com/v4/latest/USD"
    timeout_seconds: float = 5.0
    ttl_seconds: int = 3600


class StorefrontConfig(BaseModel):
    """Main Storefront configuration loaded from config.toml."""

    app_name: str = "Storefront"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    import_: ImportConfig = Field(default_factory=ImportConfig, alias="import")
    exchange_rates: ExchangeRateConfig = Field(default_factory=ExchangeRateConfig)

    model_config = {"populate_by_name": True}
