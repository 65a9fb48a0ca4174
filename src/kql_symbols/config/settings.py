"""Configuration management for kql-symbols.

This module defines all configuration settings using Pydantic for validation
and type safety. Configuration is loaded from environment variables with
sensible defaults; the same fields back the command-line knobs.
"""

from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_DOMAIN = ".kusto.windows.net"
DEFAULT_CACHE_PATH = Path("~/.kql-symbols/schemas")


class SchemaConfig(BaseSettings):
    """Schema source and cache configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEMA_")

    connection: SecretStr | None = Field(
        default=None, description="Cluster connection string (may contain credentials)"
    )
    cluster: str | None = Field(
        default=None, description="Default cluster, overrides the connection's data source"
    )
    database: str | None = Field(
        default=None, description="Default database, overrides the connection's initial catalog"
    )
    default_domain: str = Field(
        default=DEFAULT_DOMAIN, description="Domain appended to short cluster names"
    )
    cache_path: Path = Field(default=DEFAULT_CACHE_PATH, description="Schema cache directory")
    no_cache: bool = Field(default=False, description="Do not read or write the schema cache")
    generate_cache: bool = Field(
        default=False, description="Load every database of the cluster into the cache"
    )
    delete_cache: bool = Field(default=False, description="Delete the schema cache")
    strict: bool = Field(
        default=False, description="Raise loader failures instead of treating them as not found"
    )

    @field_validator("default_domain")
    @classmethod
    def validate_default_domain(cls, v: str) -> str:
        """Domain suffixes always start with a dot."""
        v = v.strip()
        if not v:
            raise ValueError("Default domain must not be empty")
        return v if v.startswith(".") else f".{v}"

    @property
    def connection_string(self) -> str | None:
        if self.connection is None:
            return None
        value = self.connection.get_secret_value().strip()
        return value or None


class DiagnosticsConfig(BaseSettings):
    """Diagnostic filtering configuration."""

    model_config = SettingsConfigDict(env_prefix="DIAGNOSTICS_")

    ignore_codes: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="Diagnostic codes to ignore"
    )
    ignore_severities: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="Diagnostic severities to ignore"
    )
    ignore_categories: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="Diagnostic categories to ignore"
    )

    @field_validator("ignore_codes", "ignore_severities", "ignore_categories", mode="before")
    @classmethod
    def parse_comma_separated_list(cls, v: str | list[str]) -> list[str]:
        """Parse comma-separated string or list."""
        if isinstance(v, str):
            return [f.strip() for f in v.split(",") if f.strip()]
        return v


class ObservabilityConfig(BaseSettings):
    """Observability and monitoring configuration."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    metrics_enabled: bool = Field(default=False, description="Expose Prometheus metrics")
    metrics_port: int = Field(
        default=9090, ge=1024, le=65535, description="Metrics HTTP server port"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )
    log_format: Literal["json", "text"] = Field(default="text", description="Log format")


class Settings(BaseSettings):
    """Main settings aggregating all config sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    source: SchemaConfig = Field(default_factory=SchemaConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance.

    Returns:
        Settings: The global settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset global settings instance. Useful for testing."""
    global _settings
    _settings = None
