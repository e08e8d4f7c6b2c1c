"""Parse findings documents produced by the offline analyzer scripts."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from ..errors import IngestionError
from ..models import UNKNOWN_FUNCTION, RawFinding, Severity

_SEVERITY_ALIASES = {
    "critical": Severity.HIGH,
    "error": Severity.HIGH,
    "high": Severity.HIGH,
    "warning": Severity.MEDIUM,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.LOW,
}


@dataclass(slots=True)
class FindingsDocument:
    """Prior scan results: metadata plus raw findings."""

    project_type: str
    scan_date: str | None
    root_path: str
    findings: List[RawFinding] = field(default_factory=list)
    total_files: int | None = None

    @property
    def file_count(self) -> int:
        """Files scanned, or the distinct files with findings when unknown."""

        if self.total_files is not None:
            return self.total_files
        return len({finding.filename for finding in self.findings})


class FindingsDocumentLoader:
    """Turn JSON findings documents into :class:`FindingsDocument` objects."""

    def load_path(self, path: str | os.PathLike[str]) -> FindingsDocument:
        path = Path(path)
        if not path.exists():
            raise IngestionError(f"Findings document not found: {path}", code="source_not_found")
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise IngestionError(f"Failed to read findings document {path}: {exc}") from exc
        return self.loads(raw)

    def loads(self, content: str | bytes) -> FindingsDocument:
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise IngestionError(
                    f"Findings document is not valid UTF-8 (byte {exc.start})",
                    code="invalid_findings_json",
                ) from exc
        try:
            data = json.loads(content or "{}")
        except json.JSONDecodeError as exc:
            raise IngestionError(
                f"Invalid JSON in findings document: {exc.msg}", code="invalid_findings_json"
            ) from exc
        return self.parse(data)

    def parse(self, data: Any) -> FindingsDocument:
        if isinstance(data, list):
            data = {"findings": data}
        if not isinstance(data, Mapping):
            raise IngestionError(
                "Findings document must be an object or a list", code="invalid_findings_json"
            )

        raw_findings = data.get("findings", []) or []
        if not isinstance(raw_findings, list):
            raise IngestionError("'findings' must be a list", code="invalid_findings_json")

        total_files = data.get("totalFiles")
        return FindingsDocument(
            project_type=str(data.get("projectType") or "unknown"),
            scan_date=data.get("scanDate"),
            root_path=str(data.get("rootPath") or ""),
            findings=list(self._parse_findings(raw_findings)),
            total_files=int(total_files) if isinstance(total_files, int) else None,
        )

    # ------------------------------------------------------------------
    def _parse_findings(self, entries: Iterable[Any]) -> Iterable[RawFinding]:
        for position, entry in enumerate(entries, start=1):
            if not isinstance(entry, Mapping):
                raise IngestionError(
                    f"Finding #{position} must be an object", code="invalid_findings_json"
                )

            category = str(entry.get("category") or "").strip()
            filename = str(entry.get("filename") or "").strip()
            if not category or not filename:
                raise IngestionError(
                    f"Finding #{position} needs 'filename' and 'category'",
                    code="invalid_findings_json",
                )

            line_number = _line_number(entry.get("lineNum"))
            if line_number is None:
                raise IngestionError(
                    f"Finding #{position} needs a positive integer lineNum",
                    code="invalid_findings_json",
                )

            yield RawFinding(
                filename=filename,
                function_name=str(entry.get("function") or UNKNOWN_FUNCTION).strip(),
                line_number=line_number,
                code=str(entry.get("code") or "").strip(),
                category=category,
                severity=self._normalize_severity(entry.get("severity")),
            )

    def _normalize_severity(self, level: object) -> Severity:
        if isinstance(level, Severity):
            return level
        if isinstance(level, str):
            normalized = level.strip().lower()
            if normalized in _SEVERITY_ALIASES:
                return _SEVERITY_ALIASES[normalized]
        return Severity.LOW


def _line_number(value: Any) -> int | None:
    """Return ``value`` as a 1-based line number, or ``None`` when it is not one."""

    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            return None
        value = int(text)
    if isinstance(value, int) and value > 0:
        return value
    return None
