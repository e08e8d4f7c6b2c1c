"""Publish analysis reports to GitHub Actions job summaries and annotations."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Iterable, Mapping, Sequence

SEVERITY_ORDER = ["high", "medium", "low"]
ANNOTATION_LEVELS = {
    "high": "error",
    "medium": "warning",
    "low": "notice",
}
STAT_LABELS = {
    "high": "highSeverity",
    "medium": "mediumSeverity",
    "low": "lowSeverity",
}
DISPLAY_LIMIT = 10


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_summary(report: Mapping[str, object], *, limit: int = DISPLAY_LIMIT) -> str:
    """Render a Markdown job summary for a report produced with ``--format json``."""

    stats: Mapping[str, object] = report.get("stats") or {}
    summary: Sequence[Mapping[str, object]] = report.get("summary") or []
    detailed: Sequence[Mapping[str, object]] = report.get("detailed") or []

    project = str(report.get("projectName") or "project")
    project_type = str(report.get("projectType") or "unknown")
    factor = report.get("complexityFactor") or 1

    lines: list[str] = [
        "# Stateful Code Analysis",
        "",
        f"**Project:** {project} ({project_type})",
        f"**Files scanned:** {int(stats.get('totalFiles', 0))}",
        f"**Total issues:** {int(stats.get('totalIssues', 0))}",
        f"**Effort score:** {round(float(stats.get('totalEffortScore', 0)))}",
    ]
    if float(factor) > 1:
        lines.append(f"**Complexity factor:** {factor}x")

    lines.extend(["", "| Severity | Issues |", "| --- | ---: |"])
    for severity in SEVERITY_ORDER:
        lines.append(f"| {severity.title()} | {int(stats.get(STAT_LABELS[severity], 0))} |")

    if summary:
        lines.extend(
            [
                "",
                "## Categories",
                "",
                "| Category | Severity | Occurrences | Effort |",
                "| --- | --- | ---: | ---: |",
            ]
        )
        for item in summary:
            lines.append(
                f"| {item.get('category', '')} | {str(item.get('severity', '')).title()} "
                f"| {item.get('occurrences', 0)} | {round(float(item.get('effortScore', 0)))} |"
            )

    if detailed:
        lines.extend(["", "## Findings", ""])
        for finding in detailed[:limit]:
            location = f"{finding.get('filename', '')}:{finding.get('lineNum', '')}"
            bullet = (
                f"- **{str(finding.get('severity', 'low')).title()}** "
                f"{finding.get('category', '')} in `{location}`"
            )
            function = str(finding.get("function") or "").strip()
            if function and function != "Unknown":
                bullet += f" _(method `{function}`)_"
            lines.append(bullet)

        remaining = len(detailed) - limit
        if remaining > 0:
            lines.append(f"- ...and {remaining} more findings.")

    lines.append("")
    return "\n".join(lines)


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate workflow command annotations, one per detailed finding."""

    detailed: Sequence[Mapping[str, object]] = report.get("detailed") or []
    for finding in detailed:
        severity = str(finding.get("severity", "low")).lower()
        level = ANNOTATION_LEVELS.get(severity, "notice")
        category = str(finding.get("category", "")).strip()
        code = str(finding.get("code", "")).strip()
        remediation = str(finding.get("remediation", "")).strip()

        attributes: list[str] = []
        filename = str(finding.get("filename", "")).strip()
        if filename:
            attributes.append(f"file={_escape_property(filename)}")
        line = finding.get("lineNum")
        if isinstance(line, int) and not isinstance(line, bool) and line > 0:
            attributes.append(f"line={line}")
        title = " - ".join(part for part in (severity.title(), category) if part)
        if title:
            attributes.append(f"title={_escape_property(title)}")

        body_parts = [part for part in (code, remediation) if part]
        if not body_parts:
            body_parts.append("Stateful pattern detected.")
        body = _escape_data("\n".join(body_parts))

        attribute_segment = " " + ",".join(attributes) if attributes else ""
        yield f"::{level}{attribute_segment}::{body}"


def read_report(source: str) -> Mapping[str, object]:
    """Read a ``--format json`` report from a file path or ``-`` for stdin."""

    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8-sig")
    try:
        data = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"{source} is not a JSON analysis report: {exc.msg}") from exc
    if not isinstance(data, Mapping):
        raise ValueError(f"{source} must hold a JSON object, not {type(data).__name__}")
    return data


def append_summary(markdown: str, destination: Path) -> None:
    # GitHub concatenates every step's writes to the summary file.
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(markdown)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="statelessor-gh-report",
        description="Publish a statelessor JSON report as a GitHub job summary and annotations.",
    )
    parser.add_argument("report", help="JSON report written by 'statelessor analyze --format json', or '-'.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Summary file to append to. Defaults to $GITHUB_STEP_SUMMARY when set.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=DISPLAY_LIMIT,
        help="Findings listed in the summary before the rest are counted.",
    )
    parser.add_argument(
        "--no-annotations",
        dest="annotations",
        action="store_false",
        help="Only write the summary.",
    )
    args = parser.parse_args(argv)

    report = read_report(args.report)
    destination = args.summary_path
    if destination is None and os.getenv("GITHUB_STEP_SUMMARY"):
        destination = Path(os.environ["GITHUB_STEP_SUMMARY"])
    if destination is not None:
        append_summary(format_summary(report, limit=max(args.limit, 0)), destination)

    if args.annotations:
        for command in iter_annotations(report):
            print(command)
    return 0


def run() -> None:  # pragma: no cover - console script
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover
    run()
