"""Configuration management module."""

from kql_symbols.config.settings import (
    DEFAULT_CACHE_PATH,
    DEFAULT_DOMAIN,
    DiagnosticsConfig,
    ObservabilityConfig,
    SchemaConfig,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "DEFAULT_CACHE_PATH",
    "DEFAULT_DOMAIN",
    "DiagnosticsConfig",
    "ObservabilityConfig",
    "SchemaConfig",
    "Settings",
    "get_settings",
    "reset_settings",
]
