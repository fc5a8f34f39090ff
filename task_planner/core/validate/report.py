from __future__ import annotations

from typing import Optional, Sequence

from task_planner.core.errors import CycleDetectedError, PlanError, PlanValidationError, PlanWarning
from task_planner.core.model import CycleReport, TaskGraph, ValidationResult
from task_planner.core.suggest.infer_dependencies import SuggestedEdge


# Validation Reporter.
# Errors:
# - E_* registry shape errors (passed in from build_registry)
# - E_DANGLING_DEPENDENCY: declared dependency id not present among tasks
# - E_CYCLE_DETECTED: one per cycle, with the literal cycle path
# Warnings:
# - W_INVALID_DURATION / W_AMBIGUOUS_TITLE (passed in from build_registry)
# - W_ISOLATED_TASK: no dependencies, no dependents, not tagged setup
# - W_INFERRED_DEPENDENCY: suggested edge that was not declared


def build_report(
    graph: TaskGraph,
    cycles: CycleReport,
    *,
    registry_errors: Sequence[PlanError] = (),
    registry_warnings: Sequence[PlanWarning] = (),
    suggestions: Optional[Sequence[SuggestedEdge]] = None,
) -> ValidationResult:
    file = graph.registry.file
    errors: list[PlanError] = list(registry_errors)
    warnings: list[PlanWarning] = list(registry_warnings)

    for edge in graph.dangling:
        errors.append(
            PlanValidationError(
                code="E_DANGLING_DEPENDENCY",
                message=(
                    f"task {edge.dependent} depends on unknown task id: {edge.prerequisite} "
                    "(edge ignored for planning)"
                ),
                task_ids=(edge.dependent, edge.prerequisite),
                file=file,
                path=f"tasks[{graph.registry.input_index(edge.dependent)}].dependencies",
            )
        )

    for cycle in cycles.cycles:
        errors.append(
            CycleDetectedError(
                code="E_CYCLE_DETECTED",
                message="dependency cycle detected: " + " -> ".join(cycle),
                task_ids=tuple(cycle),
                file=file,
                path=f"tasks[{graph.registry.input_index(cycle[0])}].dependencies",
            )
        )

    for task in graph.registry.tasks:
        if task.category == "setup":
            continue
        if graph.prerequisites.get(task.id) or graph.dependents.get(task.id):
            continue
        # A dangling reference still counts as a declared dependency.
        if task.dependencies:
            continue
        warnings.append(
            PlanWarning(
                code="W_ISOLATED_TASK",
                message=f"task {task.id} has no dependencies and no dependents",
                task_ids=(task.id,),
                file=file,
            )
        )

    for s in suggestions or ():
        extra = "; accepting it would create a cycle" if s.creates_cycle else ""
        warnings.append(
            PlanWarning(
                code="W_INFERRED_DEPENDENCY",
                message=(
                    f"task {s.dependent} may depend on {s.prerequisite} "
                    f"(rule {s.rule}, confidence {s.confidence:.2f}){extra}"
                ),
                task_ids=(s.dependent, s.prerequisite),
                file=file,
            )
        )

    return ValidationResult(errors=errors, warnings=warnings)
