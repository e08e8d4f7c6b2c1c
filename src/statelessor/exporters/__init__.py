"""Report exporters and offline script generation."""

from .csv_export import CSV_HEADERS, render_csv, write_csv
from .script_renderer import SCRIPT_FILENAMES, ScriptRenderer

__all__ = ["CSV_HEADERS", "SCRIPT_FILENAMES", "ScriptRenderer", "render_csv", "write_csv"]
