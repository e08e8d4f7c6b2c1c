"""Exception hierarchy shared by the analysis pipeline.

Every error carries a machine readable ``code`` next to the human message so
callers such as the CLI can surface a structured payload.
"""

from __future__ import annotations

from typing import Any, Dict


class StatelessorError(Exception):
    """Base exception for all analysis errors."""

    default_code = "analysis_failed"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ConfigError(StatelessorError):
    """Raised when the rule catalog or its settings are malformed."""

    default_code = "invalid_rule_catalog"


class IngestionError(StatelessorError):
    """Raised when an archive, repository or findings document cannot be used."""

    default_code = "ingestion_failed"


class FileReadError(StatelessorError):
    """Raised for a single unreadable or binary source file."""

    default_code = "file_unreadable"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class AggregationInvariantError(StatelessorError, AssertionError):
    """Raised when category membership does not partition the detailed findings."""

    default_code = "aggregation_invariant"


class AnalysisCancelled(StatelessorError):
    """Raised when a cancellation token is set while files are still pending."""

    default_code = "cancelled"


__all__ = [
    "AggregationInvariantError",
    "AnalysisCancelled",
    "ConfigError",
    "FileReadError",
    "IngestionError",
    "StatelessorError",
]
