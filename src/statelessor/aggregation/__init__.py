"""Aggregation of raw findings into report structures."""

from .aggregator import (
    AggregationResult,
    FindingAggregator,
    check_partition,
    effort_score,
    render_remediation,
)
from .complexity import ComplexityPolicy
from .report_builder import build_report

__all__ = [
    "AggregationResult",
    "ComplexityPolicy",
    "FindingAggregator",
    "build_report",
    "check_partition",
    "effort_score",
    "render_remediation",
]
