"""Line-oriented evaluation of detection rules against source units."""

from __future__ import annotations

from typing import List, Sequence

from ..models import RawFinding, Rule, SourceUnit
from .function_resolver import FunctionNameResolver

# Same set the exported scripts trim with sed [[:space:]] in the C locale.
_CODE_WHITESPACE = " \t\r\f\v"


class PatternScanner:
    """Produce raw findings for one source unit.

    Output order is rule declaration order, then ascending line number. The
    scanner holds no per-run state, so one instance can serve many threads.
    """

    def __init__(self, resolver: FunctionNameResolver | None = None) -> None:
        self.resolver = resolver or FunctionNameResolver()

    def scan(self, unit: SourceUnit, rules: Sequence[Rule]) -> List[RawFinding]:
        findings: List[RawFinding] = []
        for rule in rules:
            if rule.dialect is not unit.dialect:
                continue
            for line_number, line in unit.numbered_lines():
                if not rule.matches(line):
                    continue
                findings.append(
                    RawFinding(
                        filename=unit.relative_path,
                        function_name=self.resolver.resolve(unit, line_number),
                        line_number=line_number,
                        code=line.strip(_CODE_WHITESPACE),
                        category=rule.category,
                        severity=rule.severity,
                    )
                )
        return findings
