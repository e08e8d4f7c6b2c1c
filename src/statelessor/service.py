"""Orchestration layer used by the CLI to run analyses."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable, List, Optional, Sequence

from .adapters import (
    ArchiveExtractor,
    FindingsDocument,
    FindingsDocumentLoader,
    GitSource,
    SourceLoader,
)
from .aggregation import ComplexityPolicy, FindingAggregator, build_report
from .errors import AnalysisCancelled, FileReadError
from .models import AnalysisReport, Dialect, RawFinding, SourceUnit
from .rules import RuleCatalog, RuleCatalogLoader
from .scanning import FunctionNameResolver, PatternScanner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanOutcome:
    """Raw findings of a scan pass plus the files it covered."""

    findings: List[RawFinding] = field(default_factory=list)
    total_files: int = 0
    skipped_files: List[str] = field(default_factory=list)


class AnalysisService:
    """High level service: ingestion, scanning, aggregation and report assembly."""

    def __init__(
        self,
        catalog: RuleCatalog | None = None,
        *,
        manifests: Sequence[str | os.PathLike[str]] | None = None,
        scanner: PatternScanner | None = None,
        archive_extractor: ArchiveExtractor | None = None,
        git_source: GitSource | None = None,
        findings_loader: FindingsDocumentLoader | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.catalog = catalog or RuleCatalogLoader().load(manifests)
        settings = self.catalog.settings
        self.scanner = scanner or PatternScanner(FunctionNameResolver(settings.function_window))
        self.aggregator = FindingAggregator(self.catalog)
        self.complexity = ComplexityPolicy.from_settings(settings)
        self.archive_extractor = archive_extractor or ArchiveExtractor()
        self.git_source = git_source or GitSource()
        self.findings_loader = findings_loader or FindingsDocumentLoader()
        self.max_workers = max_workers or settings.max_workers

    # ------------------------------------------------------------------
    def scan_units(
        self,
        units: Iterable[SourceUnit],
        *,
        cancel_event: threading.Event | None = None,
    ) -> List[RawFinding]:
        """Scan in-memory units sequentially in the given order."""

        findings: List[RawFinding] = []
        for unit in units:
            _check_cancelled(cancel_event)
            findings.extend(self.scanner.scan(unit, self.catalog.rules_for(unit.dialect)))
        return findings

    def analyze_units(
        self,
        units: Sequence[SourceUnit],
        *,
        dialect: Dialect | str,
        project_name: str = "",
        root_path: str = "",
        source: str | None = None,
        complexity_hint: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisReport:
        findings = self.scan_units(units, cancel_event=cancel_event)
        return self._report(
            ScanOutcome(findings=findings, total_files=len(units)),
            project_type=Dialect(dialect).value,
            project_name=project_name,
            root_path=root_path,
            source=source,
            complexity_hint=complexity_hint,
        )

    def scan_directory(
        self,
        root: str | os.PathLike[str],
        dialect: Dialect,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ScanOutcome:
        """Scan every source file of ``dialect`` under ``root`` in parallel.

        Files are merged in discovery order. Unreadable files are logged and
        listed in ``skipped_files``.
        """

        loader = SourceLoader(root)
        paths = loader.discover(dialect)
        rules = self.catalog.rules_for(dialect)

        def scan_file(path: Path) -> Optional[List[RawFinding]]:
            _check_cancelled(cancel_event)
            try:
                unit = loader.read(path, dialect)
            except FileReadError as exc:
                logger.warning("Skipping %s: %s", exc.path, exc.reason)
                return None
            return self.scanner.scan(unit, rules)

        outcome = ScanOutcome(total_files=len(paths))
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for path, findings in zip(paths, executor.map(scan_file, paths)):
                if findings is None:
                    outcome.skipped_files.append(loader.relative_path(path))
                    continue
                outcome.findings.extend(findings)

        logger.info(
            "Scanned %d files under %s, %d findings",
            outcome.total_files,
            loader.root,
            len(outcome.findings),
        )
        return outcome

    def analyze_directory(
        self,
        root: str | os.PathLike[str],
        *,
        dialect: Dialect | str | None = None,
        project_name: str | None = None,
        source: str | None = None,
        complexity_hint: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisReport:
        root_path = Path(root).resolve()
        resolved = Dialect(dialect) if dialect else SourceLoader(root_path).detect_dialect()
        outcome = self.scan_directory(root_path, resolved, cancel_event=cancel_event)
        return self._report(
            outcome,
            project_type=resolved.value,
            project_name=project_name or root_path.name,
            root_path=str(root_path),
            source=source,
            complexity_hint=complexity_hint,
        )

    def analyze_archive(
        self,
        archive: str | os.PathLike[str] | bytes | BinaryIO,
        *,
        dialect: Dialect | str | None = None,
        project_name: str | None = None,
        complexity_hint: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisReport:
        archive_label = ""
        if isinstance(archive, (str, os.PathLike)):
            archive_label = str(archive)
            project_name = project_name or Path(archive).stem

        with self.archive_extractor.extracted(archive) as root:
            report = self.analyze_directory(
                root,
                dialect=dialect,
                project_name=project_name or root.name,
                source="zip",
                complexity_hint=complexity_hint,
                cancel_event=cancel_event,
            )
        # The extraction directory no longer exists once the block exits.
        report.root_path = archive_label
        return report

    def analyze_repository(
        self,
        url: str,
        *,
        branch: str | None = None,
        subfolder: str | None = None,
        identity_file: str | os.PathLike[str] | None = None,
        dialect: Dialect | str | None = None,
        complexity_hint: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisReport:
        project_name = repository_name(url)
        with self.git_source.checkout(
            url, branch=branch, subfolder=subfolder, identity_file=identity_file
        ) as root:
            report = self.analyze_directory(
                root,
                dialect=dialect,
                project_name=project_name,
                source="git",
                complexity_hint=complexity_hint,
                cancel_event=cancel_event,
            )
        report.root_path = url
        return report

    def analyze_findings_document(
        self,
        document: FindingsDocument | str | os.PathLike[str],
        *,
        complexity_hint: float | None = None,
    ) -> AnalysisReport:
        """Aggregate findings from a prior offline scan without rescanning."""

        if not isinstance(document, FindingsDocument):
            document = self.findings_loader.load_path(document)

        root_path = document.root_path
        return self._report(
            ScanOutcome(findings=list(document.findings), total_files=document.file_count),
            project_type=document.project_type,
            project_name=PurePosixPath(root_path.replace("\\", "/")).name or "imported-scan",
            root_path=root_path,
            source="json",
            complexity_hint=complexity_hint,
            scan_date=document.scan_date,
        )

    # ------------------------------------------------------------------
    def _report(
        self,
        outcome: ScanOutcome,
        *,
        project_type: str,
        project_name: str,
        root_path: str,
        source: str | None,
        complexity_hint: float | None,
        scan_date: str | None = None,
    ) -> AnalysisReport:
        result = self.aggregator.aggregate(outcome.findings, total_files=outcome.total_files)
        factor = self.complexity.factor(outcome.total_files, source=source, hint=complexity_hint)
        return build_report(
            result,
            project_type=project_type,
            project_name=project_name,
            root_path=root_path,
            complexity_factor=factor,
            scan_date=scan_date,
            skipped_files=outcome.skipped_files,
        )


def repository_name(url: str) -> str:
    """Return the repository name of an HTTPS or SSH Git URL."""

    tail = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if tail.endswith(".git"):
        tail = tail[: -len(".git")]
    return tail or url


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Analysis cancelled before all files were scanned")


__all__ = ["AnalysisService", "ScanOutcome", "repository_name"]
