"""Rule catalog loading utilities."""

from .rule_catalog import (
    DEFAULT_MANIFEST,
    AnalysisSettings,
    ComplexityThreshold,
    RuleCatalog,
    RuleCatalogLoader,
    load_catalog,
)

__all__ = [
    "AnalysisSettings",
    "ComplexityThreshold",
    "DEFAULT_MANIFEST",
    "RuleCatalog",
    "RuleCatalogLoader",
    "load_catalog",
]
