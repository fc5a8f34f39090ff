"""Keyword rules for the dependency suggestion pass.

A rule fires for a task whose title or details mention one of its trigger
keywords, and proposes every other task whose title mentions one of its
prerequisite keywords (or whose category is listed) as a candidate
prerequisite. Rules only ever produce suggestions.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from task_planner.core.model import CATEGORIES


DEFAULT_CONFIDENCE = 0.5


@dataclass(frozen=True)
class InferenceRule:
    name: str
    triggers: tuple[str, ...]
    prerequisite_keywords: tuple[str, ...] = ()
    prerequisite_categories: tuple[str, ...] = ()
    confidence: float = DEFAULT_CONFIDENCE


DEFAULT_RULES: tuple[InferenceRule, ...] = (
    InferenceRule(
        name="auth-after-setup",
        triggers=("authentication", "auth"),
        prerequisite_keywords=("setup", "config", "configuration"),
    ),
    InferenceRule(
        name="database-after-setup",
        triggers=("database", "db"),
        prerequisite_keywords=("setup", "config", "configuration"),
    ),
    InferenceRule(
        name="api-after-database-and-auth",
        triggers=("api", "endpoint", "endpoints"),
        prerequisite_keywords=("database", "auth", "authentication"),
    ),
    InferenceRule(
        name="ui-after-api",
        triggers=("ui", "frontend"),
        prerequisite_keywords=("api", "component library"),
        confidence=0.4,
    ),
    InferenceRule(
        name="tests-after-features",
        triggers=("test", "tests", "testing"),
        prerequisite_categories=("feature", "infrastructure"),
        confidence=0.3,
    ),
)


class RuleConfigError(ValueError):
    pass


def _str_tuple(rule_name: str, key: str, v: Any) -> tuple[str, ...]:
    if v is None:
        return ()
    if not isinstance(v, list):
        raise RuleConfigError(f"rule '{rule_name}' {key} must be a list of strings")
    out: list[str] = []
    for item in v:
        if not isinstance(item, str) or not item.strip():
            raise RuleConfigError(f"rule '{rule_name}' {key} items must be non-empty strings")
        out.append(item.strip().lower())
    return tuple(out)


def load_rule_file(path: str | Path) -> dict[str, InferenceRule]:
    """Load rules from a YAML file.

    Format:
      <name>:
        triggers: ["api", ...]
        prerequisite_keywords: ["database", ...]
        prerequisite_categories: ["feature", ...]
        confidence: 0.5
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RuleConfigError("rule file must be a mapping of name -> rule")

    out: dict[str, InferenceRule] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or not k.strip():
            raise RuleConfigError("rule names must be non-empty strings")
        name = k.strip()
        if not isinstance(v, dict):
            raise RuleConfigError(f"rule '{name}' must be a mapping")

        triggers = _str_tuple(name, "triggers", v.get("triggers"))
        if not triggers:
            raise RuleConfigError(f"rule '{name}' must have at least one trigger")
        keywords = _str_tuple(name, "prerequisite_keywords", v.get("prerequisite_keywords"))
        categories = _str_tuple(name, "prerequisite_categories", v.get("prerequisite_categories"))
        if not keywords and not categories:
            raise RuleConfigError(
                f"rule '{name}' needs prerequisite_keywords or prerequisite_categories"
            )
        for c in categories:
            if c not in CATEGORIES:
                raise RuleConfigError(
                    f"rule '{name}' has unknown category '{c}' (choose from {list(CATEGORIES)})"
                )

        confidence = v.get("confidence", DEFAULT_CONFIDENCE)
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise RuleConfigError(f"rule '{name}' confidence must be a number")
        # Explicit declarations carry confidence 1.0; suggestions must stay below it.
        if not 0 < confidence < 1:
            raise RuleConfigError(f"rule '{name}' confidence must be between 0 and 1 (exclusive)")

        out[name] = InferenceRule(
            name=name,
            triggers=triggers,
            prerequisite_keywords=keywords,
            prerequisite_categories=categories,
            confidence=float(confidence),
        )
    return out


def merged_rules(overrides: dict[str, InferenceRule] | None = None) -> tuple[InferenceRule, ...]:
    """Return DEFAULT_RULES merged with optional overrides.

    Overrides replace rules of the same name, and may add new ones.
    """
    merged = {r.name: r for r in DEFAULT_RULES}
    if overrides:
        for k, v in overrides.items():
            merged[k] = v
    return tuple(merged.values())


def load_and_merge(rules_file: str | None) -> tuple[InferenceRule, ...]:
    if not rules_file:
        return merged_rules()
    overrides = load_rule_file(rules_file)
    return merged_rules(overrides)
