from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from task_planner.core.suggest.rule_config import DEFAULT_RULES, InferenceRule


DEFAULT_MIN_DURATION_HOURS = 1.0


@dataclass(frozen=True)
class PlanningContext:
    """Per-run settings, passed explicitly to every stage that needs them.

    min_duration_hours replaces a missing or negative task duration.
    suggest_dependencies enables the keyword suggestion pass; its findings are
    reported as warnings and never change the dependency graph.
    """

    project: Optional[str] = None
    min_duration_hours: float = DEFAULT_MIN_DURATION_HOURS
    suggest_dependencies: bool = False
    rules: tuple[InferenceRule, ...] = DEFAULT_RULES
