"""Safe extraction of uploaded ZIP archives into temporary directories."""

from __future__ import annotations

import io
import logging
import os
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterator

from ..errors import IngestionError

logger = logging.getLogger(__name__)


class ArchiveExtractor:
    """Extract ZIP archives while guarding against traversal and zip bombs."""

    MAX_FILES = 20000
    MAX_TOTAL_SIZE = 500 * 1024 * 1024
    MAX_COMPRESSION_RATIO = 100

    def __init__(
        self,
        *,
        max_files: int = MAX_FILES,
        max_total_size: int = MAX_TOTAL_SIZE,
    ) -> None:
        self.max_files = max_files
        self.max_total_size = max_total_size

    @contextmanager
    def extracted(self, archive: str | os.PathLike[str] | bytes | BinaryIO) -> Iterator[Path]:
        """Yield the project root of the extracted archive.

        The temporary directory is removed when the block exits, including on
        errors raised by the caller.
        """

        source = io.BytesIO(archive) if isinstance(archive, bytes) else archive
        with tempfile.TemporaryDirectory(prefix="statelessor-zip-") as tmpdir:
            destination = Path(tmpdir)
            try:
                with zipfile.ZipFile(source) as handle:
                    self._validate(handle)
                    handle.extractall(destination)
            except zipfile.BadZipFile as exc:
                raise IngestionError("Invalid or corrupted zip file", code="invalid_archive") from exc
            except FileNotFoundError as exc:
                raise IngestionError(f"Archive not found: {archive}", code="source_not_found") from exc

            yield self._project_root(destination)

    # ------------------------------------------------------------------
    def _validate(self, handle: zipfile.ZipFile) -> None:
        entries = handle.infolist()
        if len(entries) > self.max_files:
            raise IngestionError(
                f"Too many files in archive: {len(entries)} > {self.max_files}",
                code="invalid_archive",
            )

        total_size = 0
        for info in entries:
            name = PurePosixPath(info.filename.replace("\\", "/"))
            if name.is_absolute() or ".." in name.parts:
                raise IngestionError(
                    f"Path traversal detected: {info.filename}", code="invalid_archive"
                )
            if info.compress_size and info.file_size / info.compress_size > self.MAX_COMPRESSION_RATIO:
                raise IngestionError(
                    f"Suspicious compression ratio for {info.filename}", code="invalid_archive"
                )
            total_size += info.file_size

        if total_size > self.max_total_size:
            raise IngestionError(
                f"Archive expands to {total_size} bytes, limit is {self.max_total_size}",
                code="invalid_archive",
            )
        logger.debug("Archive holds %d entries, %d bytes", len(entries), total_size)

    @staticmethod
    def _project_root(destination: Path) -> Path:
        # Archives created by zipping the project folder contain one top-level directory.
        children = [child for child in destination.iterdir() if child.name != "__MACOSX"]
        if len(children) == 1 and children[0].is_dir():
            return children[0]
        return destination
