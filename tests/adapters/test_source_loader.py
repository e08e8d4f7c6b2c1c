from pathlib import Path

import pytest

from statelessor.adapters import SourceLoader
from statelessor.errors import FileReadError, IngestionError
from statelessor.models import Dialect


def touch(root: Path, relative: str, content: str | bytes = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def test_detects_dotnet_project(tmp_path: Path):
    touch(tmp_path, "src/Shop.Web/Shop.Web.csproj", "<Project />")

    assert SourceLoader(tmp_path).detect_dialect() is Dialect.DOTNET


def test_detects_java_project(tmp_path: Path):
    touch(tmp_path, "pom.xml", "<project />")

    assert SourceLoader(tmp_path).detect_dialect() is Dialect.JAVA


def test_detection_ignores_deeply_nested_project_files(tmp_path: Path):
    touch(tmp_path, "a/b/c/d/Deep.csproj", "<Project />")

    with pytest.raises(IngestionError) as excinfo:
        SourceLoader(tmp_path).detect_dialect()

    assert excinfo.value.code == "project_type_unknown"


def test_missing_directory_raises(tmp_path: Path):
    with pytest.raises(IngestionError) as excinfo:
        SourceLoader(tmp_path / "missing")

    assert excinfo.value.code == "source_not_found"


def test_discover_skips_build_directories_and_sorts(tmp_path: Path):
    for relative in [
        "src/B.cs",
        "src/A.cs",
        "Controllers/HomeController.cs",
        "bin/Debug/Generated.cs",
        "obj/Temp.cs",
        "packages/Lib/Lib.cs",
        ".vs/State.cs",
        "src/readme.md",
    ]:
        touch(tmp_path, relative, "class X {}")

    loader = SourceLoader(tmp_path)
    files = [loader.relative_path(path) for path in loader.discover(Dialect.DOTNET)]

    assert files == ["Controllers/HomeController.cs", "src/A.cs", "src/B.cs"]


def test_discover_java_skips_target_and_build(tmp_path: Path):
    touch(tmp_path, "src/main/java/App.java")
    touch(tmp_path, "target/classes/App.java")
    touch(tmp_path, "build/generated/App.java")
    touch(tmp_path, ".idea/Scratch.java")

    loader = SourceLoader(tmp_path)

    assert [loader.relative_path(path) for path in loader.discover(Dialect.JAVA)] == [
        "src/main/java/App.java"
    ]


def test_read_returns_source_unit(tmp_path: Path):
    path = touch(tmp_path, "Home.cs", '\ufeffline one\r\nSession["x"] = 1;\n')

    unit = SourceLoader(tmp_path).read(path, Dialect.DOTNET)

    assert unit.relative_path == "Home.cs"
    assert unit.lines == ("line one", 'Session["x"] = 1;')
    assert unit.line(2) == 'Session["x"] = 1;'


def test_read_falls_back_to_latin1(tmp_path: Path):
    path = touch(tmp_path, "Legacy.cs", b"// caf\xe9\n")

    unit = SourceLoader(tmp_path).read(path, Dialect.DOTNET)

    assert unit.lines == ("// café",)


def test_read_rejects_binary_content(tmp_path: Path):
    path = touch(tmp_path, "Blob.cs", b"MZ\x00\x01\x02")

    with pytest.raises(FileReadError) as excinfo:
        SourceLoader(tmp_path).read(path, Dialect.DOTNET)

    assert excinfo.value.path == "Blob.cs"
    assert excinfo.value.code == "file_unreadable"


@pytest.mark.parametrize(
    ("content", "session_line"),
    [
        (b'// loading\x85 done\nclass A {\nSession["x"] = 1;\n}\n', 3),
        (b'class A {\x0c }\nSession["x"] = 1;\n', 2),
        (b'// a\x0bb\x1cc\nSession["x"] = 1;\r\n', 2),
        ("// caf\u00e9\u2028note\nSession[\"x\"] = 1;\n".encode("utf-8"), 2),
    ],
)
def test_only_line_feeds_end_lines(tmp_path: Path, content: bytes, session_line: int):
    path = touch(tmp_path, "Home.cs", content)

    unit = SourceLoader(tmp_path).read(path, Dialect.DOTNET)

    assert len(unit) == content.count(b"\n")
    assert unit.line(session_line) == 'Session["x"] = 1;'
