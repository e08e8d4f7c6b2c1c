"""Discover and read source files for a project directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, FrozenSet, List

from ..errors import FileReadError, IngestionError
from ..models import Dialect, SourceUnit

logger = logging.getLogger(__name__)

EXCLUDED_DIRECTORIES: FrozenSet[str] = frozenset(
    {"bin", "obj", "packages", ".vs", "target", "build", ".idea", ".git"}
)

SOURCE_SUFFIXES: Dict[Dialect, str] = {
    Dialect.DOTNET: ".cs",
    Dialect.JAVA: ".java",
}

_JAVA_MARKERS = ("pom.xml", "build.gradle", "build.gradle.kts")
_DOTNET_MARKERS = ("*.csproj", "*.sln")
_DETECTION_DEPTH = 3
_BINARY_SNIFF_BYTES = 8192


class SourceLoader:
    """Locate source files for a dialect and load them as :class:`SourceUnit`."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise IngestionError(f"Source directory not found: {self.root}", code="source_not_found")

    # ------------------------------------------------------------------
    def detect_dialect(self) -> Dialect:
        """Infer the project dialect from build files near the root."""

        for pattern in _DOTNET_MARKERS:
            for candidate in self.root.rglob(pattern):
                relative = candidate.relative_to(self.root)
                if len(relative.parts) <= _DETECTION_DEPTH and not self._is_excluded(relative):
                    return Dialect.DOTNET

        for marker in _JAVA_MARKERS:
            if (self.root / marker).exists():
                return Dialect.JAVA

        raise IngestionError(
            f"Could not detect a .NET or Java project in {self.root}",
            code="project_type_unknown",
        )

    def discover(self, dialect: Dialect) -> List[Path]:
        """Return source files for ``dialect`` sorted by relative path."""

        suffix = SOURCE_SUFFIXES[dialect]
        files: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(name for name in dirnames if name not in EXCLUDED_DIRECTORIES)
            for filename in filenames:
                if filename.endswith(suffix):
                    files.append(Path(dirpath) / filename)

        files.sort(key=lambda path: self.relative_path(path))
        logger.info("Discovered %d %s files under %s", len(files), dialect.value, self.root)
        return files

    def read(self, path: Path, dialect: Dialect) -> SourceUnit:
        """Load ``path`` or raise :class:`FileReadError` for unreadable content."""

        relative = self.relative_path(path)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise FileReadError(relative, exc.strerror or str(exc)) from exc

        if b"\x00" in raw[:_BINARY_SNIFF_BYTES]:
            raise FileReadError(relative, "binary content")

        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.debug("Decoding %s as latin-1", relative)
            text = raw.decode("latin-1")

        return SourceUnit.from_text(relative, dialect, text)

    def relative_path(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    def _is_excluded(self, relative: Path) -> bool:
        return any(part in EXCLUDED_DIRECTORIES for part in relative.parts[:-1])
