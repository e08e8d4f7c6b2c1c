"""Command-line interface package for the analyzer."""

from .app import build_parser, create_service, format_report, main, render_table, run

__all__ = [
    "build_parser",
    "create_service",
    "format_report",
    "main",
    "render_table",
    "run",
]
