"""Detection rule models loaded from the rule catalog."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .finding import Dialect, Severity


@dataclass(frozen=True, slots=True)
class Rule:
    """A line-level regular expression bound to a category and dialect."""

    id: str
    dialect: Dialect
    category: str
    severity: Severity
    pattern: re.Pattern[str]
    remediation: str
    base_effort: float
    exclusion: Optional[re.Pattern[str]] = None

    def matches(self, line: str) -> bool:
        """Return ``True`` when the line is flagged and not excluded."""

        if self.pattern.search(line) is None:
            return False
        if self.exclusion is not None and self.exclusion.search(line) is not None:
            return False
        return True


@dataclass(frozen=True, slots=True)
class CategoryProfile:
    """Remediation guidance shared by every dialect variant of a category."""

    name: str
    base_effort: float
    remediation: str
    description: str = ""
    sub_actions: Tuple[str, ...] = field(default_factory=tuple)
