"""Trace Element Analyzer: layout-shift attribution and animation diagnostics.

Each tool module takes classified trace events in and returns plain records
out; analyze.py wires them into one CLI that prints JSON to stdout.
"""

from trace_tools.diagnostics import AnalysisResult, DiagnosticRecord, run_analysis
from trace_tools.errors import MissingTraceError, TraceAnalysisError

__all__ = ["AnalysisResult", "DiagnosticRecord", "MissingTraceError", "TraceAnalysisError", "run_analysis"]
