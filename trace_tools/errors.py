"""Exception types raised by the trace analysis tools."""

from __future__ import annotations


class TraceAnalysisError(Exception):
    """Base class for all trace analysis errors."""


class MissingTraceError(TraceAnalysisError):
    """No trace was provided to analyze.

    Raised instead of returning an empty result, so callers can tell
    "no data" apart from "no findings".
    """


class ConfigError(TraceAnalysisError):
    """Invalid analysis configuration (bad policy name, non-positive top_n, unreadable file)."""


class CatalogError(TraceAnalysisError):
    """The failure reason catalog file is malformed."""
