"""Planning pipeline: registry -> graph -> cycles -> order -> critical path -> plan.

The validation report is produced on every run. A plan is produced only when
the report has no blocking errors; a dangling dependency drops its edge and
does not block.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from task_planner.core.analysis.critical_path import critical_path
from task_planner.core.context import PlanningContext
from task_planner.core.graph.build_graph import build_graph
from task_planner.core.graph.cycles import detect_cycles
from task_planner.core.graph.toposort import topological_sort
from task_planner.core.model import (
    CriticalPath,
    CycleReport,
    ExecutionPlan,
    Strategy,
    TaskGraph,
    TaskRegistry,
    ValidationResult,
)
from task_planner.core.plan.strategies import parallel_batches, strategy_for
from task_planner.core.registry.task_registry import TaskInput, build_registry
from task_planner.core.suggest.infer_dependencies import SuggestedEdge, suggest_dependencies
from task_planner.core.validate.report import build_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanningResult:
    registry: TaskRegistry
    graph: TaskGraph
    cycles: CycleReport
    report: ValidationResult
    plan: Optional[ExecutionPlan]
    critical: Optional[CriticalPath]
    suggestions: list[SuggestedEdge]


def plan_graph(graph: TaskGraph, strategy: Strategy | str = Strategy.SEQUENTIAL) -> ExecutionPlan:
    """Plan an already-built graph. Raises CycleDetectedError on a cyclic graph."""
    return _plan(graph, detect_cycles(graph), Strategy(strategy))[0]


def run_planning(
    items: Sequence[TaskInput],
    *,
    strategy: Strategy | str = Strategy.SEQUENTIAL,
    context: Optional[PlanningContext] = None,
    file: Optional[str] = None,
) -> PlanningResult:
    ctx = context or PlanningContext()
    strat = Strategy(strategy)

    registry, reg_errors, reg_warnings = build_registry(items, context=ctx, file=file)
    graph = build_graph(registry)
    cycles = detect_cycles(graph)
    suggestions = suggest_dependencies(graph, ctx.rules) if ctx.suggest_dependencies else []

    report = build_report(
        graph,
        cycles,
        registry_errors=reg_errors,
        registry_warnings=reg_warnings,
        suggestions=suggestions,
    )

    plan: Optional[ExecutionPlan] = None
    critical: Optional[CriticalPath] = None
    if report.is_blocked:
        logger.info(
            "planning blocked for %s: %d error(s)", ctx.project or "<tasks>", len(report.errors)
        )
    else:
        plan, critical = _plan(graph, cycles, strat)
        logger.info(
            "planned %d task(s) for %s with strategy %s",
            len(plan.order),
            ctx.project or "<tasks>",
            strat.value,
        )

    return PlanningResult(
        registry=registry,
        graph=graph,
        cycles=cycles,
        report=report,
        plan=plan,
        critical=critical,
        suggestions=suggestions,
    )


def build_execution_plan(
    items: Sequence[TaskInput],
    strategy: Strategy | str = Strategy.SEQUENTIAL,
    *,
    context: Optional[PlanningContext] = None,
    file: Optional[str] = None,
) -> tuple[Optional[ExecutionPlan], ValidationResult]:
    """Returns (plan, report). Plan is None when the report has blocking errors."""
    result = run_planning(items, strategy=strategy, context=context, file=file)
    return result.plan, result.report


def _plan(
    graph: TaskGraph, cycles: CycleReport, strategy: Strategy
) -> tuple[ExecutionPlan, CriticalPath]:
    topo = topological_sort(graph, cycles)
    critical = critical_path(graph, topo)
    order = strategy_for(strategy).plan_order(graph, topo, critical)

    violations = order_violations(graph, order)
    if violations or len(order) != len(graph.nodes):
        raise RuntimeError(f"strategy {strategy.value} produced an illegal order: {violations}")

    return (
        ExecutionPlan(
            strategy=strategy,
            order=order,
            critical_path=critical.task_ids,
            critical_path_duration_hours=critical.duration_hours,
            batches=parallel_batches(graph, topo),
            total_duration_hours=sum(t.estimated_duration_hours for t in graph.registry.tasks),
        ),
        critical,
    )


def order_violations(graph: TaskGraph, order: list[str]) -> list[tuple[str, str]]:
    """(dependent, prerequisite) pairs where the prerequisite is not placed first."""
    position = {nid: i for i, nid in enumerate(order)}
    bad: list[tuple[str, str]] = []
    for edge in graph.edges:
        if edge.dependent not in position or edge.prerequisite not in position:
            bad.append((edge.dependent, edge.prerequisite))
        elif position[edge.prerequisite] >= position[edge.dependent]:
            bad.append((edge.dependent, edge.prerequisite))
    return bad
