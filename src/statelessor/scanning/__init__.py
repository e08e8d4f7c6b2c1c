"""Pattern scanning over source units."""

from .function_resolver import DEFAULT_WINDOW, NOT_METHOD_NAMES, FunctionNameResolver
from .pattern_scanner import PatternScanner

__all__ = ["DEFAULT_WINDOW", "FunctionNameResolver", "NOT_METHOD_NAMES", "PatternScanner"]
