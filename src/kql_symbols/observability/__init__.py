"""Observability module for kql-symbols.

This module provides:
- Prometheus metrics collection
- Structured JSON or text logging with credential masking

Example:
    >>> from kql_symbols.observability import configure_logging, metrics
    >>>
    >>> configure_logging(level="INFO", log_format="json")
    >>> metrics.start_metrics_server(9090)
"""

from kql_symbols.observability.logging import (
    JSONFormatter,
    SensitiveDataFilter,
    TextFormatter,
    configure_logging,
    get_logger,
)
from kql_symbols.observability.metrics import MetricsCollector, metrics

__all__ = [
    # Metrics
    "MetricsCollector",
    "metrics",
    # Logging
    "configure_logging",
    "get_logger",
    "JSONFormatter",
    "TextFormatter",
    "SensitiveDataFilter",
]
