from __future__ import annotations

import heapq
from typing import Callable, Optional

from task_planner.core.errors import CycleDetectedError
from task_planner.core.graph.cycles import detect_cycles
from task_planner.core.model import CycleReport, TaskGraph


SortKey = Callable[[str], tuple]


def topological_sort(
    graph: TaskGraph,
    cycles: Optional[CycleReport] = None,
    *,
    key: Optional[SortKey] = None,
) -> list[str]:
    """Kahn's algorithm: prerequisites before dependents.

    Among tasks that are eligible at the same time the smallest `key` goes
    first; the default key prefers higher priority, then input order.

    Raises CycleDetectedError rather than returning a partial order.
    """

    report = cycles if cycles is not None else detect_cycles(graph)
    if report.has_cycle:
        raise _cycle_error(report.cycles)

    sort_key = key or graph.registry.rank_key

    in_degree: dict[str, int] = {nid: len(graph.prerequisites.get(nid, ())) for nid in graph.nodes}
    ready: list[tuple[tuple, str]] = [(sort_key(nid), nid) for nid, d in in_degree.items() if d == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, nid = heapq.heappop(ready)
        order.append(nid)
        for dependent in graph.dependents.get(nid, ()):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, (sort_key(dependent), dependent))

    if len(order) != len(graph.nodes):
        remaining = [nid for nid in graph.nodes if in_degree[nid] > 0]
        raise CycleDetectedError(
            code="E_CYCLE_DETECTED",
            message="dependency cycle among: " + ", ".join(remaining),
            task_ids=tuple(remaining),
        )
    return order


def _cycle_error(cycles: list[list[str]]) -> CycleDetectedError:
    ids: list[str] = []
    for c in cycles:
        for nid in c:
            if nid not in ids:
                ids.append(nid)
    rendered = "; ".join(" -> ".join(c) for c in cycles)
    return CycleDetectedError(
        code="E_CYCLE_DETECTED",
        message=f"dependency cycle detected: {rendered}",
        task_ids=tuple(ids),
    )
