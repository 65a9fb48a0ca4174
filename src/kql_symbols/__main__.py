"""Command-line entry point for schema cache management.

Settings are read from the environment and from ``--section.field``
arguments, for example::

    python -m kql_symbols --source.connection "https://help.kusto.windows.net;Fed=true" \\
        --source.delete_cache --source.generate_cache
"""

import sys

import anyio

from kql_symbols.analysis.runner import Runner
from kql_symbols.config.settings import Settings
from kql_symbols.models.errors import KqlSymbolsError
from kql_symbols.observability.logging import configure_logging
from kql_symbols.observability.metrics import metrics


def main(argv: list[str] | None = None) -> int:
    """Run the requested cache actions.

    Returns:
        int: 0 when every action succeeded, 1 when one failed and 2 on a
            configuration error.

    Example:
        Regenerate the cache of the connection's cluster:
        >>> SCHEMA_CONNECTION="https://help.kusto.windows.net;Fed=true" \\
        ...     python -m kql_symbols --source.generate_cache
    """
    settings = Settings(
        _cli_parse_args=sys.argv[1:] if argv is None else argv,
        _cli_prog_name="kql-symbols",
        _cli_implicit_flags=True,
    )

    configure_logging(settings.observability.log_level, settings.observability.log_format)
    if settings.observability.metrics_enabled:
        metrics.start_metrics_server(settings.observability.metrics_port)

    runner = Runner(settings=settings)
    try:
        summary = anyio.run(runner.run)
    except KqlSymbolsError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 2

    return 1 if any(action.endswith("failed") for action in summary.actions) else 0


if __name__ == "__main__":
    sys.exit(main())
