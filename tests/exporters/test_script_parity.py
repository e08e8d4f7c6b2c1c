import shutil
import subprocess
from pathlib import Path

import pytest

from statelessor.adapters import FindingsDocumentLoader
from statelessor.exporters import ScriptRenderer
from statelessor.rules import load_catalog
from statelessor.service import AnalysisService

ORDERS_CONTROLLER = b"""using System.Collections.Generic;
using System.Web.Mvc;

public class OrdersController : Controller
{
    private static Dictionary<string, List<int>> Totals = new Dictionary<string, List<int>>();

    public ActionResult Index<T>(T filter)
    {
        Session["filter"] = filter;
        return View();
    }

    public Dictionary<string, List<int>> Group<TKey, TValue>(IEnumerable<TValue> items)
    {
        Application["last-group"] = items;
        return Totals;
    }

    public int Count => (int)Session["count"];
}
"""

LEGACY_HANDLER = (
    b"// Handler written before the move to UTF-8\x85 kept as is\n"
    b"public class LegacyHandler\n"
    b"{\n"
    b"    public void Save(string caf\xe9)\n"
    b"    {\n"
    b"\x0c        Session[\"caf\xe9\"] = caf\xe9;\r\n"
    b"        HttpRuntime.Cache[\"k\"] = 1;\t\x0b\n"
    b"    }\n"
    b"}\n"
)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "shop"
    (root / "Controllers").mkdir(parents=True)
    (root / "Shop.csproj").write_text("<Project />", encoding="utf-8")
    (root / "Controllers" / "OrdersController.cs").write_bytes(ORDERS_CONTROLLER)
    (root / "LegacyHandler.cs").write_bytes(LEGACY_HANDLER)
    return root


def _finding_keys(findings):
    return sorted(
        (f.filename, f.line_number, f.category, f.function_name, f.code, f.severity.value)
        for f in findings
    )


def _expected(project: Path):
    report = AnalysisService().analyze_directory(project)
    return _finding_keys(item.finding for item in report.detailed)


def test_expected_findings_cover_generic_and_legacy_sources(project):
    expected = _expected(project)

    assert ("Controllers/OrdersController.cs", 10, "Session State", "Index") in [
        key[:4] for key in expected
    ]
    assert ("Controllers/OrdersController.cs", 16, "Application State", "Group") in [
        key[:4] for key in expected
    ]
    assert ("LegacyHandler.cs", 6, "Session State", "Save", 'Session["caf\xe9"] = caf\xe9;', "high") in expected


@pytest.mark.skipif(
    shutil.which("bash") is None or shutil.which("iconv") is None,
    reason="bash and iconv are required to run the exported script",
)
def test_bash_script_matches_in_process_scan(project, tmp_path):
    script = tmp_path / "analyze.sh"
    script.write_text(ScriptRenderer(load_catalog()).render("bash"), encoding="utf-8")
    output = tmp_path / "stateful-analysis.json"

    completed = subprocess.run(
        ["bash", str(script), str(output)],
        cwd=project,
        capture_output=True,
        timeout=120,
    )

    assert completed.returncode == 0, completed.stderr.decode("utf-8", "replace")
    document = FindingsDocumentLoader().load_path(output)
    assert _finding_keys(document.findings) == _expected(project)


@pytest.mark.skipif(shutil.which("pwsh") is None, reason="pwsh is not installed")
def test_powershell_script_matches_in_process_scan(project, tmp_path):
    script = tmp_path / "analyze.ps1"
    script.write_text(ScriptRenderer(load_catalog()).render("powershell"), encoding="utf-8")
    output = tmp_path / "stateful-analysis.json"

    completed = subprocess.run(
        ["pwsh", "-NoProfile", "-NonInteractive", "-File", str(script), "-OutputFile", str(output)],
        cwd=project,
        capture_output=True,
        timeout=300,
    )

    assert completed.returncode == 0, completed.stderr.decode("utf-8", "replace")
    document = FindingsDocumentLoader().load_path(output)
    assert _finding_keys(document.findings) == _expected(project)
