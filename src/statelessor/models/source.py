"""Source unit model handed to the scanner by the ingestion layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Tuple

from .finding import Dialect


@dataclass(frozen=True, slots=True)
class SourceUnit:
    """The text of one source file, addressed by 1-based line numbers."""

    relative_path: str
    dialect: Dialect
    lines: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_text(cls, relative_path: str, dialect: Dialect, text: str) -> "SourceUnit":
        """Split ``text`` on ``\\n`` only, dropping one trailing ``\\r`` per line.

        Form feeds, NEL and the Unicode separators stay inside their line so
        numbering agrees with ``grep -n`` in the exported scripts.
        """

        lines = text.split("\n")
        if lines[-1] == "":
            lines.pop()
        return cls(
            relative_path=relative_path,
            dialect=dialect,
            lines=tuple(line[:-1] if line.endswith("\r") else line for line in lines),
        )

    def __len__(self) -> int:
        return len(self.lines)

    def line(self, number: int) -> str:
        """Return the line at ``number`` (1-based)."""

        if number < 1 or number > len(self.lines):
            raise IndexError(f"Line {number} outside 1..{len(self.lines)} in {self.relative_path}")
        return self.lines[number - 1]

    def numbered_lines(self) -> Iterator[tuple[int, str]]:
        return enumerate(self.lines, start=1)
