"""Document analysis on top of resolved symbols.

Diagnostics themselves come from an external analysis engine. This module
resolves the schema a document references, hands the engine the resulting
snapshot, filters the diagnostics and formats them for display.
"""

import logging
from collections.abc import Iterable, Sequence
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, Field

from kql_symbols.config.settings import DiagnosticsConfig
from kql_symbols.models.symbols import GlobalState
from kql_symbols.observability.metrics import MetricsCollector, metrics
from kql_symbols.resolver.document import QueryDocument
from kql_symbols.resolver.resolver import SymbolResolver

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"
    INFORMATION = "information"


class Diagnostic(BaseModel):
    """A problem reported for a range of query text."""

    severity: Severity = Field(default=Severity.ERROR, description="Diagnostic severity")
    code: str = Field(default="", description="Diagnostic code, e.g. KS142")
    category: str = Field(default="", description="Diagnostic category")
    message: str = Field(..., description="Human-readable message")
    start: int = Field(default=-1, description="Offset in the text, or -1 if unknown")
    length: int = Field(default=0, ge=0, description="Length of the affected text")


class AnalysisEngine(Protocol):
    """Produces diagnostics for query text analyzed against a symbol snapshot."""

    def analyze(self, text: str, globals: GlobalState) -> Sequence[Diagnostic]:
        ...


class DiagnosticFilter:
    """Drops diagnostics by code, severity or category (case-insensitive).

    Example:
        >>> f = DiagnosticFilter(ignore_codes=["KS142"])
        >>> f.allows(Diagnostic(code="ks142", message="..."))
        False
    """

    def __init__(
        self,
        ignore_codes: Iterable[str] = (),
        ignore_severities: Iterable[str] = (),
        ignore_categories: Iterable[str] = (),
    ) -> None:
        self.ignore_codes = {c.lower() for c in ignore_codes}
        self.ignore_severities = {s.lower() for s in ignore_severities}
        self.ignore_categories = {c.lower() for c in ignore_categories}

    @classmethod
    def from_config(cls, config: DiagnosticsConfig) -> "DiagnosticFilter":
        return cls(config.ignore_codes, config.ignore_severities, config.ignore_categories)

    def allows(self, diagnostic: Diagnostic) -> bool:
        return not (
            diagnostic.code.lower() in self.ignore_codes
            or diagnostic.severity.value in self.ignore_severities
            or diagnostic.category.lower() in self.ignore_categories
        )


class AnalysisResult(BaseModel):
    """Outcome of analyzing one document."""

    success: bool = Field(..., description="True when no diagnostics remain")
    messages: list[str] = Field(default_factory=list, description="Formatted diagnostics")
    diagnostics: list[Diagnostic] = Field(default_factory=list, description="Raw diagnostics")


def format_diagnostic(diagnostic: Diagnostic, document: QueryDocument) -> str:
    """Format a diagnostic as ``(line, column): severity: message``.

    The position is omitted when the offset does not map into the text.
    """
    position = document.get_line_and_column(diagnostic.start)
    if position is None:
        return f"{diagnostic.severity.value}: {diagnostic.message}"
    line, column = position
    return f"({line}, {column}): {diagnostic.severity.value}: {diagnostic.message}"


class Analyzer:
    """Analyzes documents one after another against a growing snapshot.

    Schema resolved for one document is kept for the documents that follow.

    Example:
        >>> analyzer = Analyzer(engine, resolver=SymbolResolver(loader))
        >>> result = await analyzer.analyze("print x=10")
        >>> result.success
        True
    """

    def __init__(
        self,
        engine: AnalysisEngine,
        globals: GlobalState | None = None,
        resolver: SymbolResolver | None = None,
        diagnostic_filter: DiagnosticFilter | None = None,
        *,
        throw_on_error: bool = False,
        metrics_collector: MetricsCollector | None = None,
    ) -> None:
        self.engine = engine
        self.resolver = resolver
        self.diagnostic_filter = diagnostic_filter or DiagnosticFilter()
        self.throw_on_error = throw_on_error
        self.metrics = metrics_collector or metrics
        self._globals = globals or GlobalState.default()

    @property
    def globals(self) -> GlobalState:
        """The snapshot the next document is analyzed against."""
        return self._globals

    async def analyze(self, text: str) -> AnalysisResult:
        document = QueryDocument(text=text, globals=self._globals)

        if self.resolver is not None:
            document = await self.resolver.add_referenced_databases(
                document, throw_on_error=self.throw_on_error
            )
            self._globals = document.globals

        diagnostics = [
            d
            for d in self.engine.analyze(document.text, document.globals)
            if self.diagnostic_filter.allows(d)
        ]
        messages = [format_diagnostic(d, document) for d in diagnostics]

        success = not diagnostics
        self.metrics.increment_document_analyzed("succeeded" if success else "failed")
        logger.debug("Analyzed document: %d diagnostics", len(diagnostics))
        return AnalysisResult(success=success, messages=messages, diagnostics=diagnostics)
