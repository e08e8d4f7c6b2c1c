"""Render offline analyzer scripts from the rule catalog."""

from __future__ import annotations

from importlib import resources
from typing import Callable, Dict, Iterable, List

from ..adapters import EXCLUDED_DIRECTORIES
from ..models import Dialect, Rule
from ..rules import RuleCatalog
from ..scanning import NOT_METHOD_NAMES

SCRIPT_FILENAMES = {
    "bash": "analyze.sh",
    "powershell": "analyze.ps1",
}

_TEMPLATES = {
    "bash": "analyze.sh.tmpl",
    "powershell": "analyze.ps1.tmpl",
}


def _bash_quote(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def _powershell_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class ScriptRenderer:
    """Fill the bash and PowerShell templates with the catalog's rules.

    The scripts apply the same patterns, exclusions, severities, function
    window and excluded directories as the in-process scanner, and write the
    findings document that ``FindingsDocumentLoader`` reads.
    """

    def __init__(self, catalog: RuleCatalog) -> None:
        self.catalog = catalog

    def render(self, flavor: str) -> str:
        try:
            template_name = _TEMPLATES[flavor]
        except KeyError as exc:
            raise ValueError(
                f"Unknown script flavor {flavor!r}; expected one of {', '.join(sorted(_TEMPLATES))}"
            ) from exc

        template = (
            resources.files("statelessor.exporters")
            .joinpath("templates").joinpath(template_name)
            .read_text(encoding="utf-8")
        )

        if flavor == "bash":
            replacements = self._bash_values()
        else:
            replacements = self._powershell_values()

        for placeholder, value in replacements.items():
            template = template.replace(f"@@{placeholder}@@", value)
        return template

    # ------------------------------------------------------------------
    def _bash_values(self) -> Dict[str, str]:
        return {
            "FUNCTION_WINDOW": str(self.catalog.settings.function_window),
            "EXCLUDED_DIRS": " ".join(_bash_quote(name) for name in sorted(EXCLUDED_DIRECTORIES)),
            "NOT_METHOD_NAMES": " ".join(sorted(NOT_METHOD_NAMES)),
            "DOTNET_RULES": self._rule_block(Dialect.DOTNET, self._bash_rule, empty="    :"),
            "JAVA_RULES": self._rule_block(Dialect.JAVA, self._bash_rule, empty="    :"),
        }

    def _powershell_values(self) -> Dict[str, str]:
        return {
            "FUNCTION_WINDOW": str(self.catalog.settings.function_window),
            "EXCLUDED_DIRS": ", ".join(
                _powershell_quote(name) for name in sorted(EXCLUDED_DIRECTORIES)
            ),
            "NOT_METHOD_NAMES": ", ".join(
                _powershell_quote(name) for name in sorted(NOT_METHOD_NAMES)
            ),
            "DOTNET_RULES": self._rule_block(Dialect.DOTNET, self._powershell_rule),
            "JAVA_RULES": self._rule_block(Dialect.JAVA, self._powershell_rule),
        }

    def _rule_block(
        self, dialect: Dialect, render_rule: Callable[[Rule], str], empty: str = ""
    ) -> str:
        lines: List[str] = [render_rule(rule) for rule in self.catalog.rules_for(dialect)]
        return "\n".join(lines) if lines else empty

    @staticmethod
    def _bash_rule(rule: Rule) -> str:
        exclusion = rule.exclusion.pattern if rule.exclusion is not None else ""
        arguments: Iterable[str] = (
            _bash_quote(rule.pattern.pattern),
            _bash_quote(exclusion),
            _bash_quote(rule.category),
            _bash_quote(rule.severity.value),
        )
        return '    scan_rule "$file" "$relative" ' + " ".join(arguments)

    @staticmethod
    def _powershell_rule(rule: Rule) -> str:
        exclusion = rule.exclusion.pattern if rule.exclusion is not None else ""
        return (
            "        @{ "
            f"Pattern = {_powershell_quote(rule.pattern.pattern)}; "
            f"Exclusion = {_powershell_quote(exclusion)}; "
            f"Category = {_powershell_quote(rule.category)}; "
            f"Severity = {_powershell_quote(rule.severity.value)} "
            "}"
        )
