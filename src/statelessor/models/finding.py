"""Finding models shared by the scanner, the aggregator and the exporters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

UNKNOWN_FUNCTION = "Unknown"


class Severity(str, Enum):
    """Severity levels a detection rule can declare."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
}


class Dialect(str, Enum):
    """Ecosystem conventions a rule applies to."""

    DOTNET = "dotnet"
    JAVA = "java"


@dataclass(frozen=True, slots=True)
class RawFinding:
    """A single source line matched by a detection rule."""

    filename: str
    line_number: int
    code: str
    category: str
    severity: Severity
    function_name: str = UNKNOWN_FUNCTION


@dataclass(frozen=True, slots=True)
class DetailedFinding:
    """A raw finding with the report-wide id assigned during aggregation."""

    id: int
    finding: RawFinding
    remediation: str = ""

    @property
    def filename(self) -> str:
        return self.finding.filename

    @property
    def line_number(self) -> int:
        return self.finding.line_number

    @property
    def category(self) -> str:
        return self.finding.category

    @property
    def severity(self) -> Severity:
        return self.finding.severity
