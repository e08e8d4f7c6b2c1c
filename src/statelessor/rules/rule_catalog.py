"""Load, merge and validate stateful pattern rule catalogs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence, Tuple

import yaml

from ..errors import ConfigError
from ..models import CategoryProfile, Dialect, Rule, Severity

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST = Path(__file__).resolve().parent / "manifests" / "stateful-patterns.yaml"

_REQUIRED_PATTERN_FIELDS = ("id", "language", "category", "severity", "regex")
# Constructs the exported grep -E script cannot evaluate.
_NON_PORTABLE = ("(?", "\\d", "\\D")

_GENERIC_REMEDIATION = (
    "Review the {occurrences} occurrences of {category} and move the state they hold "
    "to an external store."
)


@dataclass(frozen=True, slots=True)
class ComplexityThreshold:
    files: int
    factor: float


@dataclass(slots=True)
class AnalysisSettings:
    """Tunable constants fixed for the duration of one analysis run."""

    function_window: int = 30
    effort_exponent: float = 0.8
    effort_precision: int = 1
    default_base_effort: float = 3.0
    max_workers: int = 4
    complexity_thresholds: List[ComplexityThreshold] = field(default_factory=list)
    source_complexity: Dict[str, float] = field(default_factory=dict)


class RuleCatalog:
    """Immutable set of rules partitioned by dialect, plus category guidance."""

    def __init__(
        self,
        rules: Sequence[Rule],
        profiles: Mapping[str, CategoryProfile] | None = None,
        settings: AnalysisSettings | None = None,
    ) -> None:
        self._rules: Tuple[Rule, ...] = tuple(rules)
        self._profiles: Dict[str, CategoryProfile] = dict(profiles or {})
        self.settings = settings or AnalysisSettings()
        self._by_dialect: Dict[Dialect, Tuple[Rule, ...]] = {
            dialect: tuple(rule for rule in self._rules if rule.dialect is dialect)
            for dialect in Dialect
        }

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    @property
    def categories(self) -> List[str]:
        """Category names in first declaration order."""

        names: List[str] = []
        for rule in self._rules:
            if rule.category not in names:
                names.append(rule.category)
        return names

    def rules_for(self, dialect: Dialect | str) -> Tuple[Rule, ...]:
        """Return the rules for ``dialect`` in declaration order."""

        return self._by_dialect[Dialect(dialect)]

    def profile(self, category: str) -> CategoryProfile:
        """Return guidance for ``category``, falling back to a generic profile."""

        profile = self._profiles.get(category)
        if profile is not None:
            return profile

        rules = [rule for rule in self._rules if rule.category == category]
        return CategoryProfile(
            name=category,
            base_effort=rules[0].base_effort if rules else self.settings.default_base_effort,
            remediation=rules[0].remediation if rules else _GENERIC_REMEDIATION,
            description=f"Review {category} usages.",
        )

    def base_effort(self, category: str) -> float:
        """Return the effort weight of ``category``.

        Dialect variants may override the category weight; the largest weight
        across variants is used so the score does not depend on the dialect.
        """

        weights = [rule.base_effort for rule in self._rules if rule.category == category]
        if weights:
            return max(weights)
        return self.profile(category).base_effort


class RuleCatalogLoader:
    """Load the default catalog manifest and merge overrides on top of it."""

    def __init__(self, default_manifests: Sequence[Path | str] | None = None) -> None:
        if default_manifests is None:
            self._default_manifests = [DEFAULT_MANIFEST]
        else:
            self._default_manifests = [Path(path) for path in default_manifests]

    # ------------------------------------------------------------------
    def load(self, manifests: Sequence[Path | str] | None = None) -> RuleCatalog:
        """Return the catalog defined by the default and supplied manifests."""

        manifest_paths = list(self._default_manifests)
        if manifests:
            manifest_paths.extend(Path(path) for path in manifests)

        settings: MutableMapping[str, Any] = {}
        categories: MutableMapping[str, Dict[str, Any]] = {}
        patterns: MutableMapping[str, Dict[str, Any]] = {}

        for manifest_path in manifest_paths:
            data = self._load_manifest(manifest_path)
            logger.debug("Loaded rule manifest %s", manifest_path)

            raw_settings = data.get("settings") or {}
            if not isinstance(raw_settings, Mapping):
                raise ConfigError(f"'settings' must be a mapping in {manifest_path}")
            _merge_settings(settings, raw_settings)

            raw_categories = data.get("categories") or {}
            if not isinstance(raw_categories, Mapping):
                raise ConfigError(f"'categories' must be a mapping in {manifest_path}")
            for name, config in raw_categories.items():
                if not isinstance(config, Mapping):
                    raise ConfigError(f"Category '{name}' must be a mapping in {manifest_path}")
                categories.setdefault(str(name), {}).update(config)

            raw_patterns = data.get("patterns") or []
            if not isinstance(raw_patterns, list):
                raise ConfigError(f"'patterns' must be a list in {manifest_path}")
            for entry in raw_patterns:
                if not isinstance(entry, Mapping):
                    raise ConfigError(f"Pattern entries must be mappings in {manifest_path}")
                missing = [name for name in _REQUIRED_PATTERN_FIELDS if not entry.get(name)]
                if missing and not (entry.get("id") and entry["id"] in patterns):
                    label = entry.get("id") or "<unnamed>"
                    raise ConfigError(
                        f"Pattern {label} in {manifest_path} is missing: {', '.join(missing)}"
                    )
                rule_id = str(entry["id"])
                patterns.setdefault(rule_id, {}).update(entry)

        parsed_settings = self._build_settings(settings)
        profiles = {
            name: self._build_profile(name, config, parsed_settings)
            for name, config in categories.items()
        }
        rules = [
            self._build_rule(config, profiles, parsed_settings) for config in patterns.values()
        ]

        seen: Dict[Tuple[str, Dialect], str] = {}
        for rule in rules:
            key = (rule.category, rule.dialect)
            if key in seen:
                raise ConfigError(
                    f"Patterns {seen[key]} and {rule.id} both define "
                    f"'{rule.category}' for {rule.dialect.value}"
                )
            seen[key] = rule.id

        logger.info("Rule catalog ready with %d patterns", len(rules))
        return RuleCatalog(rules, profiles, parsed_settings)

    # ------------------------------------------------------------------
    def _load_manifest(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigError(f"Rule catalog manifest not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise ConfigError(f"Failed to read rule catalog manifest {path}") from exc

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in rule catalog manifest {path}") from exc

        if not isinstance(data, Mapping):
            raise ConfigError(f"Rule catalog manifest must be a mapping: {path}")

        return dict(data)

    # ------------------------------------------------------------------
    def _build_settings(self, raw: Mapping[str, Any]) -> AnalysisSettings:
        defaults = AnalysisSettings()
        try:
            settings = AnalysisSettings(
                function_window=int(raw.get("function_window", defaults.function_window)),
                effort_exponent=float(raw.get("effort_exponent", defaults.effort_exponent)),
                effort_precision=int(raw.get("effort_precision", defaults.effort_precision)),
                default_base_effort=float(
                    raw.get("default_base_effort", defaults.default_base_effort)
                ),
                max_workers=int(raw.get("max_workers", defaults.max_workers)),
                complexity_thresholds=[
                    ComplexityThreshold(files=int(item["files"]), factor=float(item["factor"]))
                    for item in raw.get("complexity_thresholds") or []
                ],
                source_complexity={
                    str(source): float(factor)
                    for source, factor in (raw.get("source_complexity") or {}).items()
                },
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise ConfigError(f"Invalid analysis settings: {exc}") from exc

        if settings.function_window < 0:
            raise ConfigError("function_window must not be negative")
        if not 0 < settings.effort_exponent <= 1:
            raise ConfigError("effort_exponent must be within (0, 1]")
        if settings.effort_precision < 0:
            raise ConfigError("effort_precision must not be negative")
        if settings.default_base_effort <= 0:
            raise ConfigError("default_base_effort must be positive")
        if settings.max_workers < 1:
            raise ConfigError("max_workers must be at least 1")
        for threshold in settings.complexity_thresholds:
            if threshold.factor < 1:
                raise ConfigError("complexity factors must be at least 1")
        settings.complexity_thresholds.sort(key=lambda item: item.files)
        return settings

    def _build_profile(
        self, name: str, config: Mapping[str, Any], settings: AnalysisSettings
    ) -> CategoryProfile:
        base_effort = _positive_effort(
            config.get("base_effort", settings.default_base_effort), f"category '{name}'"
        )
        sub_actions = config.get("sub_actions") or []
        if not isinstance(sub_actions, list):
            raise ConfigError(f"sub_actions of category '{name}' must be a list")

        return CategoryProfile(
            name=name,
            base_effort=base_effort,
            remediation=str(config.get("remediation") or _GENERIC_REMEDIATION).strip(),
            description=str(config.get("description") or f"Review {name} usages.").strip(),
            sub_actions=tuple(str(item) for item in sub_actions),
        )

    def _build_rule(
        self,
        config: Mapping[str, Any],
        profiles: Mapping[str, CategoryProfile],
        settings: AnalysisSettings,
    ) -> Rule:
        rule_id = str(config["id"])
        category = str(config["category"]).strip()

        try:
            dialect = Dialect(str(config["language"]).strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Pattern {rule_id} has unknown language {config['language']!r}") from exc

        try:
            severity = Severity(str(config["severity"]).strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Pattern {rule_id} has unknown severity {config['severity']!r}") from exc

        profile = profiles.get(category)
        if "base_effort" in config:
            base_effort = _positive_effort(config["base_effort"], f"pattern {rule_id}")
        elif profile is not None:
            base_effort = profile.base_effort
        else:
            base_effort = settings.default_base_effort

        remediation = config.get("remediation")
        if not remediation:
            remediation = profile.remediation if profile is not None else _GENERIC_REMEDIATION

        exclusion = config.get("exclusion")
        return Rule(
            id=rule_id,
            dialect=dialect,
            category=category,
            severity=severity,
            pattern=_compile(rule_id, str(config["regex"])),
            remediation=str(remediation).strip(),
            base_effort=base_effort,
            exclusion=_compile(rule_id, str(exclusion)) if exclusion else None,
        )


def _merge_settings(merged: MutableMapping[str, Any], raw: Mapping[str, Any]) -> None:
    """Merge ``raw`` into ``merged``: nested mappings key by key, thresholds by file count."""

    for key, value in raw.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = {**current, **value}
        elif key == "complexity_thresholds" and isinstance(value, list) and isinstance(current, list):
            by_files: Dict[Any, Any] = {}
            for item in [*current, *value]:
                # Malformed entries are kept so settings validation reports them.
                marker = str(item.get("files")) if isinstance(item, Mapping) else object()
                by_files[marker] = item
            merged[key] = list(by_files.values())
        else:
            merged[key] = value


def _compile(rule_id: str, expression: str) -> re.Pattern[str]:
    for construct in _NON_PORTABLE:
        if construct in expression:
            raise ConfigError(
                f"Pattern {rule_id} uses {construct!r}, which the offline scripts cannot evaluate"
            )
    try:
        return re.compile(expression)
    except re.error as exc:
        raise ConfigError(f"Pattern {rule_id} has an invalid regex {expression!r}: {exc}") from exc


def _positive_effort(value: Any, label: str) -> float:
    try:
        effort = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"base_effort of {label} must be numeric") from exc
    if effort <= 0:
        raise ConfigError(f"base_effort of {label} must be positive")
    return effort


def load_catalog(manifests: Sequence[Path | str] | None = None) -> RuleCatalog:
    """Load the packaged catalog merged with ``manifests``."""

    return RuleCatalogLoader().load(manifests)
