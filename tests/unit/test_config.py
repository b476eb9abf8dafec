"""Unit tests for configuration module."""

import json

import pytest

from asset_migrate.config import (
    Config,
    LoggingConfig,
    MigrationConfig,
    TenantConfig,
    convert_legacy_layout,
    is_legacy_layout,
)

# Test constants
DEFAULT_PAGE_SIZE = 1000
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_MAX_PAGES = 10000

LEGACY_CONFIG = {
    "originalUaaUrl": "https://uaa-origin.test",
    "originalUaaCredentials": "b3JpZ2luOnNlY3JldA==",
    "originalAssetUrl": "https://asset-origin.test/v1",
    "originalAssetZoneId": "origin-zone",
    "destinationUaaUrl": "https://uaa-dest.test",
    "destinationUaaCredentials": "ZGVzdDpzZWNyZXQ=",
    "destinationAssetUrl": "https://asset-dest.test/v1",
    "destinationAssetZoneId": "dest-zone",
}

ENV_VARS = {
    "ASSET_ORIGIN_UAA_URL": "https://uaa-origin.test",
    "ASSET_ORIGIN_UAA_CREDENTIALS": "b3JpZ2luOnNlY3JldA==",
    "ASSET_ORIGIN_URL": "https://asset-origin.test/v1",
    "ASSET_ORIGIN_ZONE_ID": "origin-zone",
    "ASSET_DEST_UAA_URL": "https://uaa-dest.test",
    "ASSET_DEST_UAA_CREDENTIALS": "ZGVzdDpzZWNyZXQ=",
    "ASSET_DEST_URL": "https://asset-dest.test/v1",
    "ASSET_DEST_ZONE_ID": "dest-zone",
}


class TestTenantConfig:
    """Test tenant configuration."""

    def test_valid_config(self):
        """Test creating a valid tenant config."""
        tenant = TenantConfig(
            uaa_url="https://uaa.test",
            uaa_credentials="abc==",
            asset_url="https://asset.test/v1/",
            zone_id=" zone ",
        )
        assert tenant.uaa_base == "https://uaa.test"
        assert tenant.asset_base == "https://asset.test/v1"
        assert tenant.zone_id == "zone"
        assert tenant.uaa_credentials.get_secret_value() == "abc=="

    def test_credentials_hidden_in_repr(self):
        """Test that credentials do not leak into the repr."""
        tenant = TenantConfig(
            uaa_url="https://uaa.test",
            uaa_credentials="super-secret",
            asset_url="https://asset.test",
            zone_id="zone",
        )
        assert "super-secret" not in repr(tenant)

    def test_empty_credentials_validation(self):
        """Test that blank credentials raise a validation error."""
        with pytest.raises(ValueError, match="UAA credentials cannot be empty"):
            TenantConfig(
                uaa_url="https://uaa.test",
                uaa_credentials="   ",
                asset_url="https://asset.test",
                zone_id="zone",
            )

    def test_empty_zone_id_validation(self):
        """Test that a blank zone id raises a validation error."""
        with pytest.raises(ValueError, match="Zone id cannot be empty"):
            TenantConfig(
                uaa_url="https://uaa.test",
                uaa_credentials="abc",
                asset_url="https://asset.test",
                zone_id="",
            )


class TestMigrationConfig:
    """Test migration configuration."""

    def test_default_values(self):
        """Test default configuration values."""
        config = MigrationConfig()
        assert config.page_size == DEFAULT_PAGE_SIZE
        assert config.chunk_size == DEFAULT_CHUNK_SIZE
        assert config.max_pages == DEFAULT_MAX_PAGES
        assert config.collection_timeout is None
        assert config.max_concurrent is None
        assert config.timestamp_field == "migrationDate"

    def test_validation_bounds(self):
        """Test configuration validation bounds."""
        with pytest.raises(ValueError, match="chunk_size"):
            MigrationConfig(chunk_size=0)

        with pytest.raises(ValueError, match="page_size"):
            MigrationConfig(page_size=20000)

    def test_assignment_is_validated(self):
        """Test that overriding a value after creation is validated."""
        config = MigrationConfig()
        with pytest.raises(ValueError, match="chunk_size"):
            config.chunk_size = -1


class TestLoggingConfig:
    """Test logging configuration."""

    def test_level_is_normalized(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Log format"):
            LoggingConfig(format="xml")


class TestConfig:
    """Test main configuration class."""

    def test_from_env(self, monkeypatch):
        """Test loading configuration from environment variables."""
        for key, value in ENV_VARS.items():
            monkeypatch.setenv(key, value)
        monkeypatch.setenv("MIGRATION_CHUNK_SIZE", "250")
        monkeypatch.setenv("MIGRATION_COLLECTION_TIMEOUT", "60")
        monkeypatch.setenv("MIGRATION_COLLECTIONS", "sensors, turbines")

        config = Config.from_env()

        assert config.origin.zone_id == "origin-zone"
        assert config.destination.asset_base == "https://asset-dest.test/v1"
        assert config.migration.chunk_size == 250
        assert config.migration.page_size == DEFAULT_PAGE_SIZE
        assert config.migration.collection_timeout == 60.0
        assert config.migration.max_concurrent is None
        assert config.collections == ["sensors", "turbines"]

    def test_from_env_missing_variable(self, monkeypatch):
        """Test that a missing required variable is reported by name."""
        for key, value in ENV_VARS.items():
            monkeypatch.setenv(key, value)
        monkeypatch.delenv("ASSET_DEST_ZONE_ID")

        with pytest.raises(ValueError, match="ASSET_DEST_ZONE_ID"):
            Config.from_env()

    def test_from_legacy_json_file(self, tmp_path):
        """Test loading the flat asset-config.json layout."""
        config_file = tmp_path / "asset-config.json"
        config_file.write_text(json.dumps(LEGACY_CONFIG))

        config = Config.from_file(config_file)

        assert config.origin.uaa_base == "https://uaa-origin.test"
        assert config.origin.zone_id == "origin-zone"
        assert config.destination.zone_id == "dest-zone"
        assert config.migration.page_size == DEFAULT_PAGE_SIZE

    def test_from_nested_yaml_file(self, tmp_path):
        """Test loading the nested layout from YAML."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
origin:
  uaa_url: https://uaa-origin.test
  uaa_credentials: b3JpZ2luOnNlY3JldA==
  asset_url: https://asset-origin.test/v1
  zone_id: origin-zone
destination:
  uaa_url: https://uaa-dest.test
  uaa_credentials: ZGVzdDpzZWNyZXQ=
  asset_url: https://asset-dest.test/v1
  zone_id: dest-zone
migration:
  chunk_size: 500
collections:
  - sensors
"""
        )

        config = Config.from_file(config_file)

        assert config.migration.chunk_size == 500
        assert config.collections == ["sensors"]

    def test_from_file_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_file(tmp_path / "missing.json")

    def test_from_file_unsupported_extension(self, tmp_path):
        config_file = tmp_path / "config.toml"
        config_file.write_text("")
        with pytest.raises(ValueError, match="Unsupported configuration file format"):
            Config.from_file(config_file)

    def test_from_file_invalid_json(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid JSON"):
            Config.from_file(config_file)


class TestLegacyLayout:
    """Test conversion of the flat configuration layout."""

    def test_detection(self):
        assert is_legacy_layout(LEGACY_CONFIG)
        assert not is_legacy_layout({"origin": {}, "destination": {}})

    def test_query_limit_sets_page_and_chunk_size(self):
        converted = convert_legacy_layout({**LEGACY_CONFIG, "queryLimit": 200})

        assert converted["migration"] == {"page_size": 200, "chunk_size": 200}
        assert converted["origin"]["zone_id"] == "origin-zone"
        assert "originalUaaUrl" not in converted
