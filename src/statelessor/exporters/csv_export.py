"""CSV export of detailed findings."""

from __future__ import annotations

import csv
import io
from typing import TextIO

from ..models import AnalysisReport

CSV_HEADERS = ("Filename", "Function", "Line", "Code", "Issue Type", "Severity", "Remediation")


def write_csv(report: AnalysisReport, handle: TextIO) -> int:
    """Write one row per detailed finding to ``handle`` and return the row count."""

    writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for detail in report.detailed:
        finding = detail.finding
        writer.writerow(
            (
                finding.filename,
                finding.function_name,
                finding.line_number,
                finding.code,
                finding.category,
                finding.severity.value,
                detail.remediation,
            )
        )
    return len(report.detailed)


def render_csv(report: AnalysisReport) -> str:
    buffer = io.StringIO()
    write_csv(report, buffer)
    return buffer.getvalue()
