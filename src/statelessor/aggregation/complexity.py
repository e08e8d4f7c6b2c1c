"""Report-level complexity multiplier."""

from __future__ import annotations

from typing import Mapping, Sequence

from ..rules import AnalysisSettings, ComplexityThreshold


class ComplexityPolicy:
    """Derive the complexity factor from file count and ingestion hints.

    The factor is the largest of: the factor of the highest file-count
    threshold reached, the configured factor of the ingestion source, and an
    explicit hint. It never drops below 1.
    """

    def __init__(
        self,
        thresholds: Sequence[ComplexityThreshold] = (),
        source_factors: Mapping[str, float] | None = None,
    ) -> None:
        self.thresholds = sorted(thresholds, key=lambda item: item.files)
        self.source_factors = dict(source_factors or {})

    @classmethod
    def from_settings(cls, settings: AnalysisSettings) -> "ComplexityPolicy":
        return cls(settings.complexity_thresholds, settings.source_complexity)

    def factor(
        self,
        total_files: int,
        *,
        source: str | None = None,
        hint: float | None = None,
    ) -> float:
        if hint is not None and hint <= 0:
            raise ValueError("complexity hint must be positive")

        candidates = [1.0]
        for threshold in self.thresholds:
            if total_files >= threshold.files:
                candidates.append(threshold.factor)
        if source is not None and source in self.source_factors:
            candidates.append(self.source_factors[source])
        if hint is not None:
            candidates.append(hint)
        return max(candidates)
