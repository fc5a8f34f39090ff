from __future__ import annotations

import logging

from task_planner.core.model import DependencyEdge, TaskGraph, TaskRegistry

logger = logging.getLogger(__name__)


def build_graph(registry: TaskRegistry) -> TaskGraph:
    """Resolve dependency references into forward and reverse adjacency.

    Every declared reference becomes a raw edge. References to ids absent from
    the registry are kept in `dangling` and left out of the adjacency maps, so
    the rest of the graph stays usable. Self references are kept: they are
    one-node cycles.
    """

    raw_edges: list[DependencyEdge] = []
    dangling: list[DependencyEdge] = []
    prerequisites: dict[str, list[str]] = {nid: [] for nid in registry.ids}
    dependents: dict[str, list[str]] = {nid: [] for nid in registry.ids}

    for task in registry.tasks:
        for dep in task.dependencies:
            edge = DependencyEdge(dependent=task.id, prerequisite=dep)
            raw_edges.append(edge)
            if dep not in registry:
                dangling.append(edge)
                continue
            if dep not in prerequisites[task.id]:
                prerequisites[task.id].append(dep)
                dependents[dep].append(task.id)

    if dangling:
        logger.debug("graph has %d dangling edge(s)", len(dangling))

    return TaskGraph(
        registry=registry,
        raw_edges=tuple(raw_edges),
        prerequisites={k: tuple(v) for k, v in prerequisites.items()},
        dependents={k: tuple(v) for k, v in dependents.items()},
        dangling=tuple(dangling),
    )
