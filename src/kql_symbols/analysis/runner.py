"""Analysis driver.

The runner turns settings into a loader, performs the requested cache
maintenance, pre-loads the default database and analyzes each input,
writing one status line per document followed by its diagnostics.
"""

import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

import anyio
from pydantic import BaseModel, ConfigDict, Field

from kql_symbols.analysis.analyzer import AnalysisEngine, Analyzer, DiagnosticFilter
from kql_symbols.config.settings import Settings, get_settings
from kql_symbols.kusto.client import ClientFactory, create_client
from kql_symbols.kusto.connection import get_full_host_name
from kql_symbols.loaders.base import SymbolLoader, add_or_update_default_database
from kql_symbols.loaders.cached import CachedSymbolLoader
from kql_symbols.loaders.file import FileSymbolLoader
from kql_symbols.loaders.remote import RemoteSymbolLoader
from kql_symbols.models.errors import ConfigurationError
from kql_symbols.models.symbols import GlobalState
from kql_symbols.resolver.resolver import SymbolResolver

logger = logging.getLogger(__name__)

PIPED_INPUT_SOURCE = "input"


class RunSummary(BaseModel):
    """What a run did."""

    documents_analyzed: int = Field(default=0, description="Documents analyzed")
    documents_failed: int = Field(default=0, description="Documents with diagnostics")
    actions: list[str] = Field(default_factory=list, description="Status lines of cache actions")

    @property
    def succeeded(self) -> bool:
        return self.documents_failed == 0


class LoaderSetup(BaseModel):
    """Loaders and defaults selected from settings."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    loader: SymbolLoader | None = None
    cached_loader: CachedSymbolLoader | None = None
    file_loader: FileSymbolLoader | None = None
    default_cluster: str | None = None
    default_database: str | None = None


class Runner:
    """Runs cache maintenance and document analysis.

    Attributes:
        settings: Run configuration.
        engine: Analysis engine producing diagnostics. Cache actions run
            without one.

    Example:
        >>> runner = Runner(engine, Settings(), output=sys.stdout)
        >>> summary = await runner.run(piped_input="print x=10")
        input: succeeded
    """

    def __init__(
        self,
        engine: AnalysisEngine | None = None,
        settings: Settings | None = None,
        output: TextIO | None = None,
        client_factory: ClientFactory = create_client,
    ) -> None:
        self.engine = engine
        self.settings = settings or get_settings()
        self._output = output or sys.stdout
        self._client_factory = client_factory

    def create_loaders(self) -> LoaderSetup:
        """Select loaders from the schema settings.

        A connection with caching gives a cached loader, a connection without
        caching a remote loader, and no connection with caching a file loader
        over the default cluster's cache.
        """
        source = self.settings.source
        setup = LoaderSetup()

        connection = source.connection_string
        if connection:
            if source.no_cache:
                remote = RemoteSymbolLoader(
                    connection, source.default_domain, client_factory=self._client_factory
                )
                setup.loader = remote
                setup.default_cluster = remote.default_cluster
                setup.default_database = remote.default_database
            else:
                cached = CachedSymbolLoader.from_connection(
                    connection,
                    source.cache_path,
                    source.default_domain,
                    client_factory=self._client_factory,
                )
                setup.loader = setup.cached_loader = cached
                setup.file_loader = cached.file_loader
                setup.default_cluster = cached.default_cluster
                setup.default_database = cached.default_database

        if source.cluster:
            setup.default_cluster = get_full_host_name(source.cluster, source.default_domain)

        if setup.loader is None and not source.no_cache:
            setup.loader = setup.file_loader = FileSymbolLoader(
                source.cache_path, setup.default_cluster, source.default_domain
            )

        if source.database:
            setup.default_database = source.database

        return setup

    async def run(
        self, inputs: Sequence[str | Path] = (), piped_input: str | None = None
    ) -> RunSummary:
        """Run cache actions, then analyze piped input and input files.

        Args:
            inputs: Paths of query files to analyze.
            piped_input: Query text read from standard input, if any.

        Returns:
            RunSummary: Counts of analyzed and failed documents.
        """
        source = self.settings.source
        setup = self.create_loaders()
        summary = RunSummary()

        # delete always runs before generate
        if source.delete_cache and setup.file_loader is not None:
            deleted = await setup.file_loader.delete_cache()
            self._report(summary, "schema cache deleted" if deleted else "schema cache delete failed")

        if source.generate_cache and setup.cached_loader is not None:
            result = await setup.cached_loader.generate_cache()
            self._report(
                summary,
                "schema cache generated" if result.succeeded else "schema cache generation failed",
            )

        if piped_input is None and not inputs:
            if not summary.actions:
                self._write("no input")
            return summary

        if self.engine is None:
            raise ConfigurationError("No analysis engine is configured")

        # pre-load the default database only when there is something to analyze
        state = GlobalState.default()
        if setup.default_database and setup.loader is not None:
            state = await add_or_update_default_database(
                setup.loader,
                state,
                setup.default_database,
                setup.default_cluster,
                throw_on_error=source.strict,
            )

        analyzer = Analyzer(
            self.engine,
            state,
            SymbolResolver(setup.loader) if setup.loader is not None else None,
            DiagnosticFilter.from_config(self.settings.diagnostics),
            throw_on_error=source.strict,
        )

        if piped_input is not None:
            await self._analyze(analyzer, piped_input, PIPED_INPUT_SOURCE, summary)

        for path in inputs:
            try:
                text = await anyio.Path(path).read_text(encoding="utf-8")
            except OSError as e:
                logger.error("Cannot read %s: %s", path, e)
                summary.documents_failed += 1
                self._write(f"{path}: failed")
                self._write(f"error: cannot read file: {e.strerror or e}")
                continue
            await self._analyze(analyzer, text, str(path), summary)

        return summary

    async def _analyze(
        self, analyzer: Analyzer, text: str, source: str, summary: RunSummary
    ) -> None:
        result = await analyzer.analyze(text)
        summary.documents_analyzed += 1

        if result.success:
            self._write(f"{source}: succeeded")
            return

        summary.documents_failed += 1
        self._write(f"{source}: failed")
        for message in result.messages:
            self._write(message)

    def _report(self, summary: RunSummary, status: str) -> None:
        summary.actions.append(status)
        self._write(status)

    def _write(self, line: str) -> None:
        print(line, file=self._output)
