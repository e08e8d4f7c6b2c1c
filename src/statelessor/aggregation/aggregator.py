"""Roll raw findings up into scored categories and remediation actions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..errors import AggregationInvariantError
from ..models import (
    AffectedFinding,
    CategorySummary,
    DetailedFinding,
    RawFinding,
    RemediationAction,
    ReportStats,
    Severity,
)
from ..rules import RuleCatalog

logger = logging.getLogger(__name__)

SCORE_DIGITS = 2


@dataclass(slots=True)
class AggregationResult:
    summary: List[CategorySummary] = field(default_factory=list)
    detailed: List[DetailedFinding] = field(default_factory=list)
    actions: List[RemediationAction] = field(default_factory=list)
    stats: ReportStats = field(default_factory=ReportStats)


class _TemplateValues(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def effort_score(base_effort: float, occurrences: int, exponent: float) -> float:
    """Return ``base_effort * occurrences ** exponent``.

    With an exponent in (0, 1] the marginal cost of each repeated occurrence
    shrinks while the total never decreases.
    """

    if occurrences <= 0:
        return 0.0
    return round(base_effort * occurrences**exponent, SCORE_DIGITS)


def render_remediation(template: str, *, category: str, occurrences: int) -> str:
    return template.format_map(_TemplateValues(category=category, occurrences=occurrences))


class FindingAggregator:
    """Group raw findings by category and compute effort and actions."""

    def __init__(self, catalog: RuleCatalog) -> None:
        self.catalog = catalog
        self.settings = catalog.settings

    def aggregate(self, findings: Iterable[RawFinding], *, total_files: int = 0) -> AggregationResult:
        """Aggregate ``findings`` in input order.

        Ids are assigned sequentially from 1. Categories appear in the order
        their first finding was seen.
        """

        groups: Dict[str, List[int]] = {}
        ordered: List[RawFinding] = []
        for index, finding in enumerate(findings, start=1):
            ordered.append(finding)
            groups.setdefault(finding.category, []).append(index)

        result = AggregationResult(stats=ReportStats(total_files=total_files))
        remediation_by_category: Dict[str, str] = {}

        for category_id, (category, detail_ids) in enumerate(groups.items(), start=1):
            profile = self.catalog.profile(category)
            occurrences = len(detail_ids)
            score = effort_score(
                self.catalog.base_effort(category), occurrences, self.settings.effort_exponent
            )
            severity = max(
                (ordered[detail_id - 1].severity for detail_id in detail_ids),
                key=lambda item: item.rank,
            )
            remediation = render_remediation(
                profile.remediation, category=category, occurrences=occurrences
            )
            remediation_by_category[category] = remediation

            result.summary.append(
                CategorySummary(
                    id=category_id,
                    category=category,
                    severity=severity,
                    occurrences=occurrences,
                    effort_score=score,
                    remediation=remediation,
                    detail_ids=list(detail_ids),
                )
            )
            result.actions.append(
                RemediationAction(
                    id=category_id,
                    category=category,
                    description=profile.description,
                    final_effort=round(score, self.settings.effort_precision),
                    sub_actions=profile.sub_actions,
                    affected_findings=[
                        AffectedFinding(
                            filename=ordered[detail_id - 1].filename,
                            line_number=ordered[detail_id - 1].line_number,
                        )
                        for detail_id in detail_ids
                    ],
                )
            )

        result.detailed = [
            DetailedFinding(
                id=index,
                finding=finding,
                remediation=remediation_by_category[finding.category],
            )
            for index, finding in enumerate(ordered, start=1)
        ]

        stats = result.stats
        stats.total_issues = len(result.detailed)
        for detail in result.detailed:
            if detail.severity is Severity.HIGH:
                stats.high_severity += 1
            elif detail.severity is Severity.MEDIUM:
                stats.medium_severity += 1
            else:
                stats.low_severity += 1
        stats.total_effort_score = round(
            sum(item.effort_score for item in result.summary), SCORE_DIGITS
        )

        check_partition(result.summary, result.detailed)
        logger.debug(
            "Aggregated %d findings into %d categories", stats.total_issues, len(result.summary)
        )
        return result


def check_partition(summary: Sequence[CategorySummary], detailed: Sequence[DetailedFinding]) -> None:
    """Raise when category membership does not partition ``detailed`` exactly."""

    member_ids = [detail_id for item in summary for detail_id in item.detail_ids]
    expected = sorted(detail.id for detail in detailed)
    if sorted(member_ids) != expected or len(set(member_ids)) != len(member_ids):
        raise AggregationInvariantError(
            f"Category membership covers {len(member_ids)} ids for {len(expected)} findings"
        )
    occurrences = sum(item.occurrences for item in summary)
    if occurrences != len(detailed):
        raise AggregationInvariantError(
            f"Occurrences total {occurrences} does not match {len(detailed)} findings"
        )
    by_id = {detail.id: detail for detail in detailed}
    for item in summary:
        for detail_id in item.detail_ids:
            if by_id[detail_id].category != item.category:
                raise AggregationInvariantError(
                    f"Finding {detail_id} is listed under {item.category!r}"
                )
