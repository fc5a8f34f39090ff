from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional, Sequence, Union, cast

from task_planner.core.context import PlanningContext
from task_planner.core.errors import PlanError, PlanValidationError, PlanWarning
from task_planner.core.model import CATEGORIES, PRIORITIES, Category, Priority, Task, TaskRegistry

logger = logging.getLogger(__name__)

TaskInput = Union[Task, dict[str, Any]]


def _is_list_of_str_or_empty(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _dedupe(refs: Sequence[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for r in refs:
        r = r.strip()
        if r and r not in seen:
            seen.add(r)
            out.append(r)
    return tuple(out)


def build_registry(
    items: Sequence[TaskInput],
    *,
    context: Optional[PlanningContext] = None,
    file: Optional[str] = None,
) -> tuple[TaskRegistry, list[PlanError], list[PlanWarning]]:
    """Turn task records into an immutable registry.

    Accepts Task objects or raw mappings (as loaded from a task file); both go
    through the same field checks. Invalid records are reported and left out;
    duplicates keep the first occurrence. Error paths use input positions.
    Dependency references by title are resolved to ids. References that match
    nothing are kept as-is so the graph builder can report them.
    """

    ctx = context or PlanningContext()
    errors: list[PlanError] = []
    warnings: list[PlanWarning] = []
    tasks: list[Task] = []
    seen_ids: set[str] = set()
    source_index: dict[str, int] = {}
    # Tasks whose dependencies arrived as an unordered set.
    unordered: set[str] = set()

    for i, raw in enumerate(items):
        task_path = f"tasks[{i}]"
        from_set = False
        if isinstance(raw, Task):
            from_set = isinstance(raw.dependencies, (set, frozenset))
            raw = _task_to_record(raw)
        task = _parse_task(raw, task_path, file, errors)
        if task is None:
            continue

        if task.id in seen_ids:
            errors.append(
                PlanValidationError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate task id: {task.id}",
                    task_ids=(task.id,),
                    file=file,
                    path=f"{task_path}.id",
                )
            )
            continue
        seen_ids.add(task.id)
        source_index[task.id] = i
        if from_set:
            unordered.add(task.id)

        duration = task.estimated_duration_hours
        if (
            isinstance(duration, bool)
            or not isinstance(duration, (int, float))
            or duration != duration
            or duration < 0
        ):
            warnings.append(
                PlanWarning(
                    code="W_INVALID_DURATION",
                    message=(
                        f"task {task.id} has invalid estimated_duration_hours ({duration!r}); "
                        f"using {ctx.min_duration_hours}h"
                    ),
                    task_ids=(task.id,),
                    file=file,
                    path=f"{task_path}.estimated_duration_hours",
                )
            )
            duration = ctx.min_duration_hours

        tasks.append(
            replace(
                task,
                estimated_duration_hours=float(duration),
                dependencies=_dedupe(task.dependencies),
            )
        )

    if unordered:
        tasks = [_order_by_input(t, source_index) if t.id in unordered else t for t in tasks]
    tasks = _resolve_title_references(tasks, file, warnings)
    logger.debug("registry built: %d tasks, %d errors", len(tasks), len(errors))
    registry = TaskRegistry(
        tasks=tuple(tasks), project=ctx.project, file=file, source_index=source_index
    )
    return registry, errors, warnings


def _task_to_record(task: Task) -> dict[str, Any]:
    deps: Any = task.dependencies
    if isinstance(deps, (set, frozenset)):
        deps = sorted(deps, key=str)
    elif isinstance(deps, (list, tuple)):
        deps = list(deps)
    return {
        "id": task.id,
        "title": task.title,
        "estimated_duration_hours": task.estimated_duration_hours,
        "category": task.category,
        "priority": task.priority,
        "dependencies": deps,
        "details": task.details,
    }


def _order_by_input(task: Task, source_index: dict[str, int]) -> Task:
    # Known ids follow input order; anything else (titles, unknown ids) sorts after them.
    deps = sorted(task.dependencies, key=lambda ref: (source_index.get(ref, float("inf")), ref))
    return replace(task, dependencies=tuple(deps))


def _parse_task(
    raw: Any, task_path: str, file: Optional[str], errors: list[PlanError]
) -> Optional[Task]:
    if not isinstance(raw, dict):
        errors.append(
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="task must be an object",
                file=file,
                path=task_path,
            )
        )
        return None

    tid = raw.get("id")
    if not isinstance(tid, str) or not tid.strip():
        errors.append(
            PlanValidationError(
                code="E_REQUIRED_FIELD",
                message="id is required and must be a non-empty string",
                file=file,
                path=f"{task_path}.id",
            )
        )
        return None
    tid = tid.strip()

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append(
            PlanValidationError(
                code="E_REQUIRED_FIELD",
                message="title is required and must be a non-empty string",
                task_ids=(tid,),
                file=file,
                path=f"{task_path}.title",
            )
        )
        return None

    category = raw.get("category", "feature")
    if category not in CATEGORIES:
        errors.append(
            PlanValidationError(
                code="E_INVALID_ENUM",
                message=f"category must be one of {list(CATEGORIES)}",
                task_ids=(tid,),
                file=file,
                path=f"{task_path}.category",
            )
        )
        return None

    priority = raw.get("priority", "medium")
    if priority not in PRIORITIES:
        errors.append(
            PlanValidationError(
                code="E_INVALID_ENUM",
                message=f"priority must be one of {list(PRIORITIES)}",
                task_ids=(tid,),
                file=file,
                path=f"{task_path}.priority",
            )
        )
        return None

    deps = raw.get("dependencies", [])
    if deps is None:
        deps = []
    if not _is_list_of_str_or_empty(deps):
        errors.append(
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="dependencies must be an array of strings",
                task_ids=(tid,),
                file=file,
                path=f"{task_path}.dependencies",
            )
        )
        return None

    details = raw.get("details", "")
    if not isinstance(details, str):
        details = ""

    # Duration is checked by the caller so a bad value degrades to a warning.
    duration = raw.get("estimated_duration_hours")

    return Task(
        id=tid,
        title=title.strip(),
        estimated_duration_hours=cast(float, duration),
        category=cast(Category, category),
        priority=cast(Priority, priority),
        dependencies=tuple(cast(list[str], deps)),
        details=details,
    )


def _resolve_title_references(
    tasks: list[Task], file: Optional[str], warnings: list[PlanWarning]
) -> list[Task]:
    ids = {t.id for t in tasks}
    ids_by_title: dict[str, list[str]] = {}
    for t in tasks:
        ids_by_title.setdefault(t.title, []).append(t.id)

    resolved: list[Task] = []
    for t in tasks:
        new_deps: list[str] = []
        for ref in t.dependencies:
            if ref in ids:
                new_deps.append(ref)
                continue
            matches = ids_by_title.get(ref, [])
            if not matches:
                new_deps.append(ref)
                continue
            if len(matches) > 1:
                warnings.append(
                    PlanWarning(
                        code="W_AMBIGUOUS_TITLE",
                        message=(
                            f"task {t.id} references title '{ref}' shared by {matches}; "
                            f"using {matches[0]}"
                        ),
                        task_ids=(t.id, *matches),
                        file=file,
                    )
                )
            logger.debug("resolved title reference %r -> %s for task %s", ref, matches[0], t.id)
            new_deps.append(matches[0])
        resolved.append(replace(t, dependencies=_dedupe(new_deps)))
    return resolved
