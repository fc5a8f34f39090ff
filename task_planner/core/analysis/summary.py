from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from task_planner.core.model import CATEGORIES, ExecutionPlan, TaskGraph


LONG_CRITICAL_PATH_TASKS = 5


@dataclass(frozen=True)
class PlanSummary:
    task_count: int
    dependency_count: int
    category_counts: dict[str, int]
    total_duration_hours: float
    critical_path_duration_hours: float
    max_parallelism: int
    blocking_tasks: list[str]
    recommendations: list[str]


def blocking_tasks(graph: TaskGraph) -> list[str]:
    """Tasks with more dependents than the average task, in input order."""
    if not graph.nodes:
        return []
    counts = {nid: len(graph.dependents.get(nid, ())) for nid in graph.nodes}
    avg = sum(counts.values()) / len(counts)
    return [nid for nid in graph.nodes if counts[nid] > avg]


def recommendations(graph: TaskGraph, plan: ExecutionPlan) -> list[str]:
    out: list[str] = []
    categories = {t.category for t in graph.registry.tasks}
    if "setup" not in categories:
        out.append("Consider adding project setup tasks before implementing features.")
    if "testing" not in categories:
        out.append("Add testing tasks to cover the implemented features.")
    if len(plan.critical_path) > LONG_CRITICAL_PATH_TASKS:
        out.append(
            f"Critical path has {len(plan.critical_path)} tasks. "
            "Consider breaking down large tasks or removing unneeded dependencies."
        )
    return out


def summarize(graph: TaskGraph, plan: ExecutionPlan) -> PlanSummary:
    counts = Counter(t.category for t in graph.registry.tasks)
    return PlanSummary(
        task_count=len(graph.nodes),
        dependency_count=len(graph.edges),
        category_counts={c: int(counts.get(c, 0)) for c in CATEGORIES},
        total_duration_hours=plan.total_duration_hours,
        critical_path_duration_hours=plan.critical_path_duration_hours,
        max_parallelism=max((len(b) for b in plan.batches), default=0),
        blocking_tasks=blocking_tasks(graph),
        recommendations=recommendations(graph, plan),
    )


def summarize_text(summary: PlanSummary) -> str:
    parts = [f"{c}={summary.category_counts.get(c, 0)}" for c in CATEGORIES]
    return (
        f"OK: {summary.task_count} tasks ("
        + ", ".join(parts)
        + f")\nDependencies: {summary.dependency_count}"
        + f"\nCritical path: {summary.critical_path_duration_hours:g}h"
        + f" of {summary.total_duration_hours:g}h total"
    )
