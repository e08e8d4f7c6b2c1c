"""Command-line interface for the stateful pattern analyzer."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from ..errors import StatelessorError
from ..exporters import SCRIPT_FILENAMES, ScriptRenderer, render_csv
from ..models import AnalysisReport, Dialect, Severity
from ..rules import RuleCatalog, RuleCatalogLoader
from ..service import AnalysisService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def render_table(report: AnalysisReport) -> str:
    """Render the category summary as a text table for terminal output."""

    header = (
        f"{report.project_name} ({report.project_type}) - "
        f"{report.stats.total_files} files, {report.stats.total_issues} issues, "
        f"effort {report.stats.total_effort_score:g}"
    )
    if report.complexity_factor > 1:
        header += f" (complexity factor {report.complexity_factor:g}x)"

    if not report.summary:
        return f"{header}\nNo stateful patterns detected."

    headers = ("Severity", "Category", "Occurrences", "Effort")
    rows = [headers]
    for item in report.summary:
        rows.append(
            (
                item.severity.value,
                item.category,
                str(item.occurrences),
                f"{item.effort_score:g}",
            )
        )

    widths = [max(len(str(row[idx])) for row in rows) for idx in range(len(headers))]

    def format_row(values: tuple[str, str, str, str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))

    lines = [header, "", format_row(headers)]
    lines.append("  ".join("=" * width for width in widths))
    for row in rows[1:]:
        lines.append(format_row(row))

    lines.append("")
    for detail in report.detailed:
        finding = detail.finding
        lines.append(
            f"{finding.filename}:{finding.line_number} [{finding.category}] "
            f"{finding.function_name}: {finding.code}"
        )
    return "\n".join(lines)


def _add_catalog_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--rule-manifest",
        dest="rule_manifests",
        action="append",
        default=None,
        type=str,
        help="Additional YAML rule manifest merged over the packaged catalog.",
    )
    parser.add_argument(
        "--window",
        type=int,
        default=None,
        help="Lines scanned above a finding to attribute it to a method.",
    )


def _add_report_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["table", "json", "csv"],
        default="table",
        help="Output format for the analysis report.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the report to this file instead of stdout.",
    )
    parser.add_argument(
        "--fail-on",
        choices=[severity.value for severity in Severity],
        default=None,
        help="Exit with status 1 when findings at or above this severity are present.",
    )
    parser.add_argument(
        "--complexity-hint",
        type=float,
        default=None,
        help="Complexity multiplier applied to the total effort score (at least 1 is effective).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="statelessor",
        description="Detect stateful code patterns in .NET and Java projects.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (logs go to stderr).",
    )
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser(
        "analyze", help="Scan a project directory, ZIP archive or Git repository."
    )
    analyze_parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=None,
        help="Project directory or .zip archive. Defaults to the current directory.",
    )
    analyze_parser.add_argument("--git", dest="git_url", default=None, help="Repository URL to clone.")
    analyze_parser.add_argument("--branch", default=None, help="Branch to check out with --git.")
    analyze_parser.add_argument(
        "--subfolder", default=None, help="Repository subfolder to analyze with --git."
    )
    analyze_parser.add_argument(
        "--identity-file",
        type=Path,
        default=None,
        help="SSH private key used to clone private repositories.",
    )
    analyze_parser.add_argument(
        "--dialect",
        choices=[dialect.value for dialect in Dialect],
        default=None,
        help="Skip project type detection and scan with this dialect.",
    )
    analyze_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of files scanned concurrently.",
    )
    _add_catalog_arguments(analyze_parser)
    _add_report_arguments(analyze_parser)

    import_parser = subparsers.add_parser(
        "import", help="Aggregate a findings document produced by the offline scripts."
    )
    import_parser.add_argument("findings", type=Path, help="Path to stateful-analysis.json.")
    _add_catalog_arguments(import_parser)
    _add_report_arguments(import_parser)

    script_parser = subparsers.add_parser(
        "script", help="Generate the offline analyzer script for bash or PowerShell."
    )
    script_parser.add_argument("flavor", choices=sorted(SCRIPT_FILENAMES))
    script_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the script to this file instead of stdout.",
    )
    _add_catalog_arguments(script_parser)

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


def load_catalog(args: argparse.Namespace) -> RuleCatalog:
    catalog = RuleCatalogLoader().load(args.rule_manifests or None)
    if args.window is not None:
        if args.window < 0:
            raise ValueError("--window must not be negative")
        catalog.settings.function_window = args.window
    return catalog


def create_service(catalog: RuleCatalog, *, max_workers: int | None = None) -> AnalysisService:
    """Create the analysis service used by the ``analyze`` and ``import`` commands."""

    return AnalysisService(catalog, max_workers=max_workers)


def format_report(report: AnalysisReport, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(report.to_dict(), indent=2)
    if output_format == "csv":
        return render_csv(report)
    if output_format == "table":
        return render_table(report)
    raise ValueError("format must be one of 'table', 'json' or 'csv'")


def should_fail(report: AnalysisReport, fail_on: str | None) -> bool:
    if fail_on is None:
        return False
    highest = report.highest_severity
    if highest is None:
        return False
    return highest.rank >= Severity(fail_on).rank


def _emit(content: str, destination: Path | None) -> None:
    if destination is None:
        print(content)
        return
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(content if content.endswith("\n") else content + "\n", encoding="utf-8")
    logger.info("Wrote %s", destination)


def _print_error(exc: StatelessorError) -> int:
    print(json.dumps(exc.to_dict()), file=sys.stderr)
    return 2


def _finish(report: AnalysisReport, args: argparse.Namespace) -> int:
    _emit(format_report(report, args.format), args.output)
    return 1 if should_fail(report, args.fail_on) else 0


def _handle_analyze(args: argparse.Namespace) -> int:
    try:
        catalog = load_catalog(args)
        service = create_service(catalog, max_workers=args.workers)

        if args.git_url:
            report = service.analyze_repository(
                args.git_url,
                branch=args.branch,
                subfolder=args.subfolder,
                identity_file=args.identity_file,
                dialect=args.dialect,
                complexity_hint=args.complexity_hint,
            )
        else:
            path = (args.path or Path.cwd()).resolve()
            if path.is_file() and path.suffix.lower() == ".zip":
                report = service.analyze_archive(
                    path, dialect=args.dialect, complexity_hint=args.complexity_hint
                )
            else:
                report = service.analyze_directory(
                    path, dialect=args.dialect, complexity_hint=args.complexity_hint
                )
    except StatelessorError as exc:
        return _print_error(exc)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    return _finish(report, args)


def _handle_import(args: argparse.Namespace) -> int:
    try:
        catalog = load_catalog(args)
        service = create_service(catalog)
        report = service.analyze_findings_document(
            args.findings.resolve(), complexity_hint=args.complexity_hint
        )
    except StatelessorError as exc:
        return _print_error(exc)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    return _finish(report, args)


def _handle_script(args: argparse.Namespace) -> int:
    try:
        catalog = load_catalog(args)
    except StatelessorError as exc:
        return _print_error(exc)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    _emit(ScriptRenderer(catalog).render(args.flavor), args.output)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    handlers = {
        "analyze": _handle_analyze,
        "import": _handle_import,
        "script": _handle_script,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
