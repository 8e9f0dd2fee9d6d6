"""Tests for the Storefront configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

from storefront.config.loader import (
    apply_env_overrides,
    find_config_file,
    get_config_search_paths,
    load_config,
    load_toml_file,
)
from storefront.config.schema import (
    DatabaseConfig,
    ExchangeRateConfig,
    ImportConfig,
    ServerConfig,
    StorageConfig,
    StorefrontConfig,
)
from storefront.config.settings import Settings, get_settings, reset_settings


class TestSchemaDefaults:
    """Test default values in schema models."""

    def test_server_config_defaults(self):
        """Test ServerConfig has correct defaults."""
        config = ServerConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.debug is False
        assert config.public_url == "http://localhost:9000"
        assert config.cors_origins == []

    def test_database_config_defaults(self):
        config = DatabaseConfig()
        assert config.mongodb_url == "mongodb://localhost:27017"
        assert config.mongodb_database == "storefront"

    def test_storage_config_defaults(self):
        """Test StorageConfig has correct defaults."""
        config = StorageConfig()
        assert config.data_dir == Path("data")
        assert config.images_dir == Path("data/images")
        assert config.max_upload_bytes == 10 * 1024 * 1024

    def test_import_config_defaults(self):
        """Test ImportConfig has correct defaults."""
        config = ImportConfig()
        assert config.batch_size == 200
        assert config.consistency_retries == 3
        assert config.consistency_delay_seconds == 1.0
        assert config.image_max_bytes == 20 * 1024 * 1024
        assert config.store_currencies == ["usd", "eur", "gbp", "inr"]

    def test_exchange_rate_config_defaults(self):
        config = ExchangeRateConfig()
        assert config.url.endswith("/latest/USD")
        assert config.ttl_seconds == 3600

    def test_storefront_config_defaults(self):
        """Test StorefrontConfig has correct defaults."""
        config = StorefrontConfig()
        assert config.app_name == "Storefront"
        assert isinstance(config.server, ServerConfig)
        assert isinstance(config.import_, ImportConfig)
        assert isinstance(config.exchange_rates, ExchangeRateConfig)


class TestConfigSearchPaths:
    """Test configuration file search paths."""

    def test_config_search_paths_order(self):
        """Test config search paths are in correct priority order."""
        paths = get_config_search_paths()
        assert len(paths) == 3
        assert paths[0] == Path.cwd() / "config.toml"
        assert paths[1] == Path.home() / ".config" / "storefront" / "config.toml"
        assert paths[2] == Path("/etc/storefront/config.toml")

    def test_find_config_file_in_cwd(self, tmp_path, monkeypatch):
        """Test finding config file in current directory."""
        (tmp_path / "config.toml").write_text('app_name = "Found"\n')
        monkeypatch.chdir(tmp_path)

        assert find_config_file() == tmp_path / "config.toml"


class TestTomlLoading:
    """Test TOML file loading."""

    def test_load_toml_file(self, tmp_path):
        """Test loading a valid TOML file."""
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            """
app_name = "TestShop"

[server]
host = "0.0.0.0"
port = 9100
"""
        )

        data = load_toml_file(config_file)
        assert data["app_name"] == "TestShop"
        assert data["server"]["host"] == "0.0.0.0"
        assert data["server"]["port"] == 9100

    def test_load_config_from_file(self, tmp_path):
        """The [import] table populates the import section."""
        config_file = tmp_path / "config.toml"
        config_file.write_text(
            """
[server]
public_url = "https://shop.example.com"

[import]
batch_size = 50
store_currencies = ["usd", "eur"]

[exchange_rates]
ttl_seconds = 600
"""
        )

        config = load_config(config_file)
        assert config.server.public_url == "https://shop.example.com"
        assert config.import_.batch_size == 50
        assert config.import_.store_currencies == ["usd", "eur"]
        assert config.exchange_rates.ttl_seconds == 600
        # Defaults should still apply
        assert config.server.port == 9000
        assert config.import_.row_concurrency == 8


class TestEnvOverrides:
    """Test environment variable overrides."""

    def test_backend_url_override(self):
        """BACKEND_URL sets the public origin used for rehosted images."""
        config_dict = {}

        with patch.dict(os.environ, {"BACKEND_URL": "https://api.shop.example.com"}):
            apply_env_overrides(config_dict)

        assert config_dict["server"]["public_url"] == "https://api.shop.example.com"

    def test_import_overrides_are_converted(self):
        config_dict = {"import": {"batch_size": 10}}

        with patch.dict(
            os.environ,
            {
                "STOREFRONT_IMPORT_BATCH_SIZE": "25",
                "STOREFRONT_IMPORT_CONSISTENCY_DELAY_SECONDS": "0.25",
                "STOREFRONT_IMPORT_STORE_CURRENCIES": "usd, eur ,jpy",
            },
        ):
            apply_env_overrides(config_dict)

        assert config_dict["import"]["batch_size"] == 25
        assert config_dict["import"]["consistency_delay_seconds"] == 0.25
        assert config_dict["import"]["store_currencies"] == ["usd", "eur", "jpy"]

    def test_apply_boolean_override(self):
        """Test boolean overrides with 'true' value."""
        config_dict = {"server": {"debug": False}}

        with patch.dict(os.environ, {"STOREFRONT_DEBUG": "true"}):
            apply_env_overrides(config_dict)

        assert config_dict["server"]["debug"] is True

    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("[exchange_rates]\nttl_seconds = 600\n")

        with patch.dict(os.environ, {"STOREFRONT_EXCHANGE_RATES_TTL_SECONDS": "60"}):
            config = load_config(config_file)

        assert config.exchange_rates.ttl_seconds == 60


class TestSettings:
    """Test the Settings class."""

    def setup_method(self):
        """Reset settings before each test."""
        reset_settings()

    def test_settings_property_accessors(self):
        """Test all property accessors work correctly."""
        config = StorefrontConfig(
            app_name="TestShop",
            server=ServerConfig(public_url="https://shop.example.com/"),
            database=DatabaseConfig(mongodb_database="testdb"),
            import_=ImportConfig(store_currencies=["USD", "Eur"], image_max_mb=1),
        )
        settings = Settings(config=config)

        assert settings.app_name == "TestShop"
        assert settings.public_url == "https://shop.example.com"
        assert settings.mongodb_database == "testdb"
        assert settings.store_currencies == ["usd", "eur"]
        assert settings.image_max_bytes == 1024 * 1024
        assert settings.image_storage_path == Path("data/images")
        assert settings.exchange_rate_ttl_seconds == 3600

    def test_get_settings_singleton(self):
        """Test get_settings returns same instance."""
        s1 = get_settings()
        s2 = get_settings()
        assert s1 is s2

    def test_reset_settings_clears_cache(self):
        """Test reset_settings clears the cached instance."""
        s1 = get_settings()
        reset_settings()
        s2 = get_settings()
        assert s1 is not s2
