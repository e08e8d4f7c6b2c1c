from __future__ import annotations

import io
import threading
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import pytest

from statelessor.adapters import FindingsDocument
from statelessor.errors import AnalysisCancelled, IngestionError
from statelessor.models import Dialect, RawFinding, Severity, SourceUnit
from statelessor.service import AnalysisService, repository_name

HOME_CONTROLLER = """using System.Web.Mvc;

public class HomeController : Controller
{
    private static int counter = 0;

    public ActionResult Index()
    {
        Session["user"] = "alice";
        return View();
    }
}
"""

ORDER_SERVICE = """public class OrderService
{
    private static readonly string Name = "orders";

    public void Save(Order order)
    {
        Session["last"] = order;
    }
}
"""


def write_project(root: Path) -> Path:
    (root / "Shop.csproj").write_text("<Project />", encoding="utf-8")
    controllers = root / "Controllers"
    controllers.mkdir()
    (controllers / "HomeController.cs").write_text(HOME_CONTROLLER, encoding="utf-8")
    (root / "OrderService.cs").write_text(ORDER_SERVICE, encoding="utf-8")
    return root


class FakeGitSource:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.calls: list[dict] = []

    @contextmanager
    def checkout(self, url: str, **kwargs) -> Iterator[Path]:
        self.calls.append({"url": url, **kwargs})
        yield self.root


def test_analyze_units_builds_report() -> None:
    unit = SourceUnit.from_text("Controllers/HomeController.cs", Dialect.DOTNET, HOME_CONTROLLER)

    report = AnalysisService().analyze_units([unit], dialect=Dialect.DOTNET, project_name="Shop")

    assert report.project_type == "dotnet"
    assert report.stats.total_files == 1
    assert report.stats.total_issues == 2
    assert report.stats.high_severity == 2
    assert report.stats.total_effort_score == 13.0
    assert [item.category for item in report.summary] == ["Session State", "Static Mutable Field"]

    session = report.detailed[0].finding
    assert session.function_name == "Index"
    assert session.line_number == 9
    static_field = report.detailed[1].finding
    assert static_field.function_name == "Unknown"
    assert static_field.code == "private static int counter = 0;"


def test_analyze_directory_discovers_and_detects(tmp_path: Path) -> None:
    write_project(tmp_path)

    report = AnalysisService().analyze_directory(tmp_path)

    assert report.project_type == "dotnet"
    assert report.project_name == tmp_path.name
    assert report.root_path == str(tmp_path.resolve())
    assert report.stats.total_files == 2
    assert [detail.filename for detail in report.detailed] == [
        "Controllers/HomeController.cs",
        "Controllers/HomeController.cs",
        "OrderService.cs",
    ]
    session = report.summary[0]
    assert session.category == "Session State"
    assert session.occurrences == 2
    assert session.detail_ids == [1, 3]


def test_unreadable_files_are_skipped(tmp_path: Path) -> None:
    write_project(tmp_path)
    (tmp_path / "Native.cs").write_bytes(b"\x00\x01binary")

    report = AnalysisService().analyze_directory(tmp_path)

    assert report.skipped_files == ["Native.cs"]
    assert report.stats.total_files == 3
    assert report.stats.total_issues == 3


def test_results_do_not_depend_on_worker_count(tmp_path: Path) -> None:
    write_project(tmp_path)

    sequential = AnalysisService(max_workers=1).analyze_directory(tmp_path)
    parallel = AnalysisService(max_workers=8).analyze_directory(tmp_path)

    assert sequential.to_dict()["detailed"] == parallel.to_dict()["detailed"]
    assert sequential.to_dict()["summary"] == parallel.to_dict()["summary"]


def test_cancelled_directory_scan_raises(tmp_path: Path) -> None:
    write_project(tmp_path)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(AnalysisCancelled):
        AnalysisService().analyze_directory(tmp_path, cancel_event=cancel)


def test_cancelled_unit_scan_raises() -> None:
    unit = SourceUnit.from_text("A.cs", Dialect.DOTNET, HOME_CONTROLLER)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(AnalysisCancelled):
        AnalysisService().analyze_units([unit], dialect="dotnet", cancel_event=cancel)


def test_undetectable_project_raises(tmp_path: Path) -> None:
    (tmp_path / "notes.txt").write_text("nothing here", encoding="utf-8")

    with pytest.raises(IngestionError) as excinfo:
        AnalysisService().analyze_directory(tmp_path)

    assert excinfo.value.code == "project_type_unknown"


def test_analyze_archive_bytes() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("Shop/Shop.csproj", "<Project />")
        archive.writestr("Shop/Controllers/HomeController.cs", HOME_CONTROLLER)

    report = AnalysisService().analyze_archive(buffer.getvalue())

    assert report.project_name == "Shop"
    assert report.root_path == ""
    assert report.stats.total_issues == 2
    assert report.detailed[0].filename == "Controllers/HomeController.cs"


def test_analyze_archive_path_uses_archive_name(tmp_path: Path) -> None:
    archive_path = tmp_path / "legacy-app.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        archive.writestr("pom.xml", "<project />")
        archive.writestr(
            "src/App.java",
            "public class App {\n    private static final ThreadLocal<String> USER = new ThreadLocal<>();\n}\n",
        )

    report = AnalysisService().analyze_archive(archive_path)

    assert report.project_type == "java"
    assert report.project_name == "legacy-app"
    assert report.root_path == str(archive_path)
    assert [item.category for item in report.summary] == ["Thread-Local Storage"]


def test_analyze_repository_uses_git_source(tmp_path: Path) -> None:
    write_project(tmp_path)
    git = FakeGitSource(tmp_path)
    service = AnalysisService(git_source=git)

    report = service.analyze_repository(
        "git@example.com:acme/shop.git", branch="main", subfolder=None
    )

    assert git.calls[0]["url"] == "git@example.com:acme/shop.git"
    assert git.calls[0]["branch"] == "main"
    assert report.project_name == "shop"
    assert report.root_path == "git@example.com:acme/shop.git"
    assert report.stats.total_issues == 3


def test_analyze_findings_document() -> None:
    document = FindingsDocument(
        project_type="dotnet",
        scan_date="2024-05-01T10:00:00Z",
        root_path="C:\\src\\Shop",
        findings=[
            RawFinding("Home.cs", 9, 'Session["user"] = "alice";', "Session State", Severity.HIGH, "Index"),
            RawFinding("Cache.cs", 3, "MemoryCache.Default.Set(k, v);", "In-Process Cache", Severity.MEDIUM),
        ],
        total_files=40,
    )

    report = AnalysisService().analyze_findings_document(document)

    assert report.project_name == "Shop"
    assert report.scan_date == "2024-05-01T10:00:00Z"
    assert report.stats.total_files == 40
    assert report.stats.medium_severity == 1
    assert [item.id for item in report.summary] == [1, 2]


def test_empty_input_produces_empty_report() -> None:
    report = AnalysisService().analyze_units([], dialect=Dialect.JAVA, project_name="Empty")

    assert report.summary == []
    assert report.detailed == []
    assert report.actions == []
    assert report.stats.total_effort_score == 0


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/acme/shop.git", "shop"),
        ("https://github.com/acme/shop/", "shop"),
        ("git@github.com:acme/billing.git", "billing"),
        ("git@github.com:inventory.git", "inventory"),
    ],
)
def test_repository_name(url: str, expected: str) -> None:
    assert repository_name(url) == expected


def test_line_numbers_count_line_feeds_only(tmp_path: Path) -> None:
    (tmp_path / "Shop.csproj").write_text("<Project />", encoding="utf-8")
    (tmp_path / "Legacy.cs").write_bytes(
        b'// loading\x85 done\nclass A {\x0c }\npublic void Save() {\nSession["x"] = 1;\n}\n'
    )

    report = AnalysisService().analyze_directory(tmp_path)

    finding = report.detailed[0].finding
    assert finding.line_number == 4
    assert finding.function_name == "Save"
    assert finding.code == 'Session["x"] = 1;'
