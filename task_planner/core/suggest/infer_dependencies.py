from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

from task_planner.core.model import Task, TaskGraph
from task_planner.core.suggest.rule_config import DEFAULT_RULES, InferenceRule


@dataclass(frozen=True)
class SuggestedEdge:
    dependent: str
    prerequisite: str
    rule: str
    confidence: float
    # Accepting the edge would close a cycle with the declared dependencies.
    creates_cycle: bool = False


def _mentions(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def suggest_dependencies(
    graph: TaskGraph, rules: Sequence[InferenceRule] = DEFAULT_RULES
) -> list[SuggestedEdge]:
    """Propose candidate prerequisites from keyword rules.

    Candidates that are already declared (directly) are skipped; the result
    never feeds back into the graph. When several rules propose the same edge
    the most confident one is kept.
    """

    tasks = graph.registry.tasks
    best: dict[tuple[str, str], SuggestedEdge] = {}

    for task in tasks:
        subject = f"{task.title} {task.details}".lower()
        declared = set(task.dependencies)
        for rule in rules:
            if not any(_mentions(subject, t) for t in rule.triggers):
                continue
            for cand in tasks:
                if cand.id == task.id or cand.id in declared:
                    continue
                if not _matches_candidate(cand, rule):
                    continue
                key = (task.id, cand.id)
                current = best.get(key)
                if current is not None and current.confidence >= rule.confidence:
                    continue
                best[key] = SuggestedEdge(
                    dependent=task.id,
                    prerequisite=cand.id,
                    rule=rule.name,
                    confidence=rule.confidence,
                    creates_cycle=_reaches(graph, cand.id, task.id),
                )

    order = {nid: i for i, nid in enumerate(graph.nodes)}
    return sorted(best.values(), key=lambda s: (order[s.dependent], order[s.prerequisite]))


def _matches_candidate(cand: Task, rule: InferenceRule) -> bool:
    if cand.category in rule.prerequisite_categories:
        return True
    title = cand.title.lower()
    return any(_mentions(title, k) for k in rule.prerequisite_keywords)


def _reaches(graph: TaskGraph, start: str, target: str) -> bool:
    """True when `start` already depends (transitively) on `target`."""
    stack = [start]
    seen: set[str] = set()
    while stack:
        cur = stack.pop()
        if cur == target:
            return True
        if cur in seen:
            continue
        seen.add(cur)
        stack.extend(graph.prerequisites.get(cur, ()))
    return False
