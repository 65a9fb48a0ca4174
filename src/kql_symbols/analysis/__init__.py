"""Document analysis and the analysis driver."""

from kql_symbols.analysis.analyzer import (
    AnalysisEngine,
    AnalysisResult,
    Analyzer,
    Diagnostic,
    DiagnosticFilter,
    Severity,
    format_diagnostic,
)
from kql_symbols.analysis.runner import LoaderSetup, Runner, RunSummary

__all__ = [
    "AnalysisEngine",
    "AnalysisResult",
    "Analyzer",
    "Diagnostic",
    "DiagnosticFilter",
    "LoaderSetup",
    "RunSummary",
    "Runner",
    "Severity",
    "format_diagnostic",
]
