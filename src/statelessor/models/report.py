"""Report models assembled from aggregated findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .finding import DetailedFinding, Severity


@dataclass(slots=True)
class CategorySummary:
    """Occurrence count, effort and guidance for one category."""

    id: int
    category: str
    severity: Severity
    occurrences: int
    effort_score: float
    remediation: str
    detail_ids: List[int] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class AffectedFinding:
    filename: str
    line_number: int


@dataclass(slots=True)
class RemediationAction:
    """Implementation roadmap entry for a category."""

    id: int
    category: str
    description: str
    final_effort: float
    sub_actions: Tuple[str, ...] = field(default_factory=tuple)
    affected_findings: List[AffectedFinding] = field(default_factory=list)


@dataclass(slots=True)
class ReportStats:
    total_files: int = 0
    total_issues: int = 0
    high_severity: int = 0
    medium_severity: int = 0
    low_severity: int = 0
    total_effort_score: float = 0.0


@dataclass(slots=True)
class AnalysisReport:
    """Complete analysis output consumed by the CLI, exporters and UI."""

    project_type: str
    scan_date: str
    project_name: str
    root_path: str
    stats: ReportStats
    summary: Sequence[CategorySummary] = field(default_factory=list)
    detailed: Sequence[DetailedFinding] = field(default_factory=list)
    actions: Sequence[RemediationAction] = field(default_factory=list)
    complexity_factor: float = 1.0
    skipped_files: Sequence[str] = field(default_factory=list)

    @property
    def highest_severity(self) -> Optional[Severity]:
        if not self.detailed:
            return None
        return max((item.severity for item in self.detailed), key=lambda severity: severity.rank)

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase document served to report consumers."""

        return {
            "projectType": self.project_type,
            "scanDate": self.scan_date,
            "projectName": self.project_name,
            "rootPath": self.root_path,
            "complexityFactor": self.complexity_factor,
            "stats": {
                "totalFiles": self.stats.total_files,
                "totalIssues": self.stats.total_issues,
                "highSeverity": self.stats.high_severity,
                "mediumSeverity": self.stats.medium_severity,
                "lowSeverity": self.stats.low_severity,
                "totalEffortScore": self.stats.total_effort_score,
            },
            "summary": [_serialize_summary(item) for item in self.summary],
            "detailed": [_serialize_detail(item) for item in self.detailed],
            "actions": [_serialize_action(item) for item in self.actions],
            "skippedFiles": list(self.skipped_files),
        }


def _serialize_summary(summary: CategorySummary) -> Dict[str, Any]:
    return {
        "id": summary.id,
        "category": summary.category,
        "severity": summary.severity.value,
        "occurrences": summary.occurrences,
        "effortScore": summary.effort_score,
        "remediation": summary.remediation,
        "detailIds": list(summary.detail_ids),
    }


def _serialize_detail(detail: DetailedFinding) -> Dict[str, Any]:
    finding = detail.finding
    return {
        "id": detail.id,
        "filename": finding.filename,
        "function": finding.function_name,
        "lineNum": finding.line_number,
        "code": finding.code,
        "category": finding.category,
        "severity": finding.severity.value,
        "remediation": detail.remediation,
    }


def _serialize_action(action: RemediationAction) -> Dict[str, Any]:
    return {
        "id": action.id,
        "category": action.category,
        "description": action.description,
        "subActions": list(action.sub_actions),
        "finalEffort": action.final_effort,
        "affectedFindings": [
            {"filename": item.filename, "lineNum": item.line_number}
            for item in action.affected_findings
        ],
    }
