"""Data models for rules, source units, findings and analysis reports."""

from .finding import UNKNOWN_FUNCTION, DetailedFinding, Dialect, RawFinding, Severity
from .report import (
    AffectedFinding,
    AnalysisReport,
    CategorySummary,
    RemediationAction,
    ReportStats,
)
from .rule import CategoryProfile, Rule
from .source import SourceUnit

__all__ = [
    "AffectedFinding",
    "AnalysisReport",
    "CategoryProfile",
    "CategorySummary",
    "DetailedFinding",
    "Dialect",
    "RawFinding",
    "RemediationAction",
    "ReportStats",
    "Rule",
    "Severity",
    "SourceUnit",
    "UNKNOWN_FUNCTION",
]
