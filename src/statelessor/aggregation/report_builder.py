"""Assemble :class:`AnalysisReport` instances from aggregation results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from ..models import AnalysisReport, ReportStats
from .aggregator import SCORE_DIGITS, AggregationResult


def build_report(
    result: AggregationResult,
    *,
    project_type: str,
    project_name: str,
    root_path: str = "",
    complexity_factor: float = 1.0,
    scan_date: str | None = None,
    skipped_files: Sequence[str] = (),
) -> AnalysisReport:
    """Return the report for ``result``.

    ``complexity_factor`` scales the total effort score only; category scores
    are left untouched.
    """

    stats = result.stats
    adjusted = ReportStats(
        total_files=stats.total_files,
        total_issues=stats.total_issues,
        high_severity=stats.high_severity,
        medium_severity=stats.medium_severity,
        low_severity=stats.low_severity,
        total_effort_score=round(stats.total_effort_score * complexity_factor, SCORE_DIGITS),
    )

    return AnalysisReport(
        project_type=project_type,
        scan_date=scan_date or datetime.now(timezone.utc).isoformat(timespec="seconds"),
        project_name=project_name,
        root_path=root_path,
        stats=adjusted,
        summary=list(result.summary),
        detailed=list(result.detailed),
        actions=list(result.actions),
        complexity_factor=complexity_factor,
        skipped_files=list(skipped_files),
    )
