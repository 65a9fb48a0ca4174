"""Prometheus metrics collector for kql-symbols.

This module tracks remote control commands, schema cache traffic,
negative-cache hits and analyzed documents using prometheus_client.
"""

from prometheus_client import Counter, Histogram, start_http_server


class MetricsCollector:
    """Centralized metrics collector using Prometheus client.

    Metrics Categories:
    - Remote metrics: control commands issued and their latency
    - Cache metrics: file cache lookups and writes
    - Resolution metrics: negative-cache hits, analyzed documents

    Example:
        >>> metrics = MetricsCollector()
        >>> metrics.increment_remote_command("show_databases", "success")
    """

    _instance: "MetricsCollector | None" = None

    def __new__(cls) -> "MetricsCollector":
        """Ensure singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize_metrics()
        return cls._instance

    def _initialize_metrics(self) -> None:
        # Remote Metrics
        self.remote_commands: Counter = Counter(
            "kql_symbols_remote_commands_total",
            "Total number of control commands sent to clusters",
            labelnames=["command", "status"],
        )

        self.remote_command_duration: Histogram = Histogram(
            "kql_symbols_remote_command_duration_seconds",
            "Control command latency in seconds",
            labelnames=["command"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
        )

        # Cache Metrics
        self.cache_lookups: Counter = Counter(
            "kql_symbols_cache_lookups_total",
            "Schema file cache lookups",
            labelnames=["kind", "result"],
        )

        self.cache_writes: Counter = Counter(
            "kql_symbols_cache_writes_total",
            "Schema file cache writes",
            labelnames=["kind", "status"],
        )

        # Resolution Metrics
        self.negative_cache_hits: Counter = Counter(
            "kql_symbols_negative_cache_hits_total",
            "Lookups skipped because the name is known not to resolve",
            labelnames=["layer"],
        )

        self.documents_analyzed: Counter = Counter(
            "kql_symbols_documents_analyzed_total",
            "Documents analyzed",
            labelnames=["status"],
        )

    def start_metrics_server(self, port: int) -> None:
        """Start the Prometheus metrics HTTP server."""
        start_http_server(port)

    def increment_remote_command(self, command: str, status: str) -> None:
        """Increment remote command counter.

        Args:
            command: Command kind (show_databases, show_database_schema, ...).
            status: Outcome (success, error).
        """
        self.remote_commands.labels(command=command, status=status).inc()

    def observe_remote_command_duration(self, command: str, duration: float) -> None:
        self.remote_command_duration.labels(command=command).observe(duration)

    def increment_cache_lookup(self, kind: str, result: str) -> None:
        """Increment cache lookup counter.

        Args:
            kind: What was looked up (database, database_names).
            result: Lookup result (hit, miss, corrupt).
        """
        self.cache_lookups.labels(kind=kind, result=result).inc()

    def increment_cache_write(self, kind: str, status: str) -> None:
        self.cache_writes.labels(kind=kind, status=status).inc()

    def increment_negative_cache_hit(self, layer: str) -> None:
        """Increment negative-cache hit counter.

        Args:
            layer: Which negative cache was hit (loader, resolver).
        """
        self.negative_cache_hits.labels(layer=layer).inc()

    def increment_document_analyzed(self, status: str) -> None:
        self.documents_analyzed.labels(status=status).inc()


# Singleton instance
metrics = MetricsCollector()
