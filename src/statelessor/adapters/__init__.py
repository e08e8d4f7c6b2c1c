"""Ingestion adapters: directories, archives, repositories and findings documents."""

from .archive import ArchiveExtractor
from .findings_json import FindingsDocument, FindingsDocumentLoader
from .git_source import GitSource
from .source_loader import EXCLUDED_DIRECTORIES, SOURCE_SUFFIXES, SourceLoader

__all__ = [
    "ArchiveExtractor",
    "EXCLUDED_DIRECTORIES",
    "FindingsDocument",
    "FindingsDocumentLoader",
    "GitSource",
    "SOURCE_SUFFIXES",
    "SourceLoader",
]
