from __future__ import annotations

import logging
from typing import Optional

from task_planner.core.graph.toposort import topological_sort
from task_planner.core.model import CriticalPath, TaskGraph

logger = logging.getLogger(__name__)


def critical_path(graph: TaskGraph, order: Optional[list[str]] = None) -> CriticalPath:
    """Longest duration-weighted prerequisite -> dependent chain.

    One forward pass over the topological order computes earliest finish
    times and a predecessor pointer per task; ties between equally long
    predecessors (and between equally long endpoints) go to the higher
    priority, then earlier input position. A backward pass yields latest
    finish times, so slack is zero exactly along critical chains.
    """

    topo = order if order is not None else topological_sort(graph)
    if not topo:
        return CriticalPath(task_ids=[], duration_hours=0.0)

    registry = graph.registry
    duration = {nid: registry[nid].estimated_duration_hours for nid in topo}

    earliest_start: dict[str, float] = {}
    earliest_finish: dict[str, float] = {}
    pred: dict[str, Optional[str]] = {}
    best_end: Optional[str] = None

    for nid in topo:
        best_prev: Optional[str] = None
        for p in graph.prerequisites.get(nid, ()):
            if best_prev is None or _better(earliest_finish[p], p, earliest_finish[best_prev], best_prev, graph):
                best_prev = p
        start = earliest_finish[best_prev] if best_prev is not None else 0.0
        earliest_start[nid] = start
        earliest_finish[nid] = start + duration[nid]
        pred[nid] = best_prev

        if best_end is None or _better(earliest_finish[nid], nid, earliest_finish[best_end], best_end, graph):
            best_end = nid

    assert best_end is not None
    path: list[str] = []
    cur: Optional[str] = best_end
    while cur is not None:
        path.append(cur)
        cur = pred[cur]
    path.reverse()

    total = earliest_finish[best_end]

    latest_finish: dict[str, float] = {}
    for nid in reversed(topo):
        deps = graph.dependents.get(nid, ())
        if deps:
            latest_finish[nid] = min(latest_finish[d] - duration[d] for d in deps)
        else:
            latest_finish[nid] = total

    logger.debug("critical path %s (%.2fh)", " -> ".join(path), total)
    return CriticalPath(
        task_ids=path,
        duration_hours=total,
        earliest_start=earliest_start,
        earliest_finish=earliest_finish,
        latest_finish=latest_finish,
    )


def _better(value: float, nid: str, best_value: float, best_id: str, graph: TaskGraph) -> bool:
    if value != best_value:
        return value > best_value
    return graph.registry.rank_key(nid) < graph.registry.rank_key(best_id)
