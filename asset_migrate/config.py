"""Configuration models and environment variable parsing for the asset migration tool."""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, SecretStr, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_PAGE_SIZE = 1000
DEFAULT_CHUNK_SIZE = 1000

# Keys of the flat asset-config.json used by the original migration script
LEGACY_KEYS = {
    "origin": {
        "uaa_url": "originalUaaUrl",
        "uaa_credentials": "originalUaaCredentials",
        "asset_url": "originalAssetUrl",
        "zone_id": "originalAssetZoneId",
    },
    "destination": {
        "uaa_url": "destinationUaaUrl",
        "uaa_credentials": "destinationUaaCredentials",
        "asset_url": "destinationAssetUrl",
        "zone_id": "destinationAssetZoneId",
    },
}


class TenantConfig(BaseModel):
    """Configuration for one asset service tenant and its identity provider."""

    uaa_url: HttpUrl = Field(..., description="UAA identity provider base URL")
    uaa_credentials: SecretStr = Field(
        ..., description="Base64 encoded client_id:client_secret"
    )
    asset_url: HttpUrl = Field(..., description="Asset service base URL")
    zone_id: str = Field(..., description="Predix zone id of the asset instance")

    @field_validator("uaa_credentials")
    def validate_credentials(cls, v: SecretStr) -> SecretStr:
        """Validate that credentials are not empty."""
        value = v.get_secret_value().strip()
        if not value:
            raise ValueError("UAA credentials cannot be empty")
        return SecretStr(value)

    @field_validator("zone_id")
    def validate_zone_id(cls, v: str) -> str:
        """Validate that the zone id is not empty."""
        if not v or v.strip() == "":
            raise ValueError("Zone id cannot be empty")
        return v.strip()

    @property
    def uaa_base(self) -> str:
        """UAA base URL without trailing slash."""
        return str(self.uaa_url).rstrip("/")

    @property
    def asset_base(self) -> str:
        """Asset service base URL without trailing slash."""
        return str(self.asset_url).rstrip("/")


class MigrationConfig(BaseModel):
    """Configuration for migration behavior."""

    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        ge=1,
        le=10000,
        description="Number of records requested per page from the origin",
    )
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        ge=1,
        le=10000,
        description="Number of records posted per request to the destination",
    )
    max_pages: int = Field(
        default=10000,
        ge=1,
        description="Maximum number of pages fetched for a single collection",
    )
    request_timeout: float = Field(
        default=30.0, gt=0, description="HTTP request timeout in seconds"
    )
    collection_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Timeout in seconds for migrating a single collection",
    )
    max_concurrent: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of collections migrated at once (unbounded if unset)",
    )
    timestamp_field: str = Field(
        default="migrationDate",
        min_length=1,
        description="Record field stamped with the migration time",
    )

    class Config:
        """Pydantic config."""

        validate_assignment = True


class LoggingConfig(BaseModel):
    """Configuration for structured logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator("format")
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()

    class Config:
        """Pydantic config."""

        validate_assignment = True


class Config(BaseModel):
    """Main configuration class for the asset migration tool."""

    origin: TenantConfig
    destination: TenantConfig
    migration: MigrationConfig = Field(default_factory=MigrationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    collections: list[str] | None = Field(
        default=None,
        description="Collection names to migrate (if None, migrate all collections)",
    )

    class Config:
        """Pydantic config."""

        validate_assignment = True

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables.

        Returns:
            Config instance populated from environment variables.

        Raises:
            ValueError: If required environment variables are missing.
        """
        tenants = {}
        for label, prefix in (("origin", "ASSET_ORIGIN"), ("destination", "ASSET_DEST")):
            values = {}
            for field_name, suffix in (
                ("uaa_url", "UAA_URL"),
                ("uaa_credentials", "UAA_CREDENTIALS"),
                ("asset_url", "URL"),
                ("zone_id", "ZONE_ID"),
            ):
                env_name = f"{prefix}_{suffix}"
                value = os.getenv(env_name)
                if not value:
                    raise ValueError(f"{env_name} environment variable is required")
                values[field_name] = value
            tenants[label] = TenantConfig(**values)

        # Migration settings
        page_size = int(os.getenv("MIGRATION_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)))
        chunk_size = int(os.getenv("MIGRATION_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)))
        max_pages = int(os.getenv("MIGRATION_MAX_PAGES", "10000"))
        request_timeout = float(os.getenv("MIGRATION_REQUEST_TIMEOUT", "30.0"))
        collection_timeout = os.getenv("MIGRATION_COLLECTION_TIMEOUT")
        max_concurrent = os.getenv("MIGRATION_MAX_CONCURRENT")

        # Logging settings
        log_level = os.getenv("LOG_LEVEL", "INFO")
        log_format = os.getenv("LOG_FORMAT", "json")

        collections = os.getenv("MIGRATION_COLLECTIONS")

        return cls(
            origin=tenants["origin"],
            destination=tenants["destination"],
            migration=MigrationConfig(
                page_size=page_size,
                chunk_size=chunk_size,
                max_pages=max_pages,
                request_timeout=request_timeout,
                collection_timeout=float(collection_timeout)
                if collection_timeout
                else None,
                max_concurrent=int(max_concurrent) if max_concurrent else None,
            ),
            logging=LoggingConfig(
                level=log_level,
                format=log_format,
            ),
            collections=[c.strip() for c in collections.split(",") if c.strip()]
            if collections
            else None,
        )

    @classmethod
    def from_file(cls, config_path: Path) -> "Config":
        """Create configuration from a YAML or JSON file.

        Both the nested layout of this model and the flat ``asset-config.json``
        layout (``originalUaaUrl``, ``destinationAssetZoneId``, ...) are accepted.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config instance populated from the file

        Raises:
            ValueError: If the file format is unsupported or required fields are missing
            FileNotFoundError: If the configuration file doesn't exist
        """
        import yaml

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        file_extension = config_path.suffix.lower()

        try:
            if file_extension == ".json":
                with open(config_path) as f:
                    config_data = json.load(f)
            elif file_extension in [".yaml", ".yml"]:
                with open(config_path) as f:
                    config_data = yaml.safe_load(f)
            else:
                raise ValueError(
                    f"Unsupported configuration file format: {file_extension}. Supported formats: .json, .yaml, .yml"
                )

            if not isinstance(config_data, dict):
                raise ValueError("Configuration file must contain a mapping")

            if is_legacy_layout(config_data):
                config_data = convert_legacy_layout(config_data)

            return cls(**config_data)

        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except ValueError:
            raise
        except Exception as e:
            raise ValueError(f"Failed to load configuration file: {e}") from e


def is_legacy_layout(data: dict[str, Any]) -> bool:
    """Check whether a config mapping uses the flat asset-config.json keys."""
    return "originalUaaUrl" in data or "destinationUaaUrl" in data


def convert_legacy_layout(data: dict[str, Any]) -> dict[str, Any]:
    """Convert a flat asset-config.json mapping into the nested layout.

    Unknown keys are carried over so that ``migration``/``logging`` sections
    may still be supplied next to the flat keys.
    """
    legacy_names = {name for keys in LEGACY_KEYS.values() for name in keys.values()}
    converted: dict[str, Any] = {
        key: value for key, value in data.items() if key not in legacy_names
    }
    for label, keys in LEGACY_KEYS.items():
        converted[label] = {
            field_name: data.get(legacy_name)
            for field_name, legacy_name in keys.items()
        }
    if "queryLimit" in converted:
        limit = converted.pop("queryLimit")
        migration = dict(converted.get("migration") or {})
        migration.setdefault("page_size", limit)
        migration.setdefault("chunk_size", limit)
        converted["migration"] = migration
    return converted
