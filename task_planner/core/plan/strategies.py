from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from task_planner.core.graph.toposort import topological_sort
from task_planner.core.model import PRIORITY_RANK, CriticalPath, CycleReport, Strategy, TaskGraph


class PlanningStrategy(Protocol):
    def plan_order(
        self, graph: TaskGraph, topo_order: list[str], critical: CriticalPath
    ) -> list[str]: ...


def parallel_batches(graph: TaskGraph, topo_order: list[str]) -> list[list[str]]:
    """Group tasks by depth: 0 without prerequisites, else 1 + deepest prerequisite.

    Inside a batch tasks are listed by descending priority, then input order.
    """

    level: dict[str, int] = {}
    for nid in topo_order:
        prereqs = graph.prerequisites.get(nid, ())
        level[nid] = 1 + max(level[p] for p in prereqs) if prereqs else 0

    batches: list[list[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for nid in topo_order:
        batches[level[nid]].append(nid)
    return [sorted(b, key=graph.registry.rank_key) for b in batches]


@dataclass(frozen=True)
class SequentialStrategy:
    def plan_order(
        self, graph: TaskGraph, topo_order: list[str], critical: CriticalPath
    ) -> list[str]:
        return list(topo_order)


@dataclass(frozen=True)
class CriticalPathFirstStrategy:
    """Critical-path tasks as early as their prerequisites allow, in path order.

    Everything else follows by descending priority, then input order. The
    result is produced by the sorter itself, so it is always a legal order.
    """

    def plan_order(
        self, graph: TaskGraph, topo_order: list[str], critical: CriticalPath
    ) -> list[str]:
        position = {nid: i for i, nid in enumerate(critical.task_ids)}
        registry = graph.registry

        def key(nid: str) -> tuple:
            if nid in position:
                return (0, position[nid], 0)
            return (1, -PRIORITY_RANK[registry[nid].priority], registry.index_of(nid))

        # Callers hand in a validated graph; the sorter still checks its output length.
        return topological_sort(graph, CycleReport(has_cycle=False, cycles=[]), key=key)


@dataclass(frozen=True)
class ParallelizableStrategy:
    def plan_order(
        self, graph: TaskGraph, topo_order: list[str], critical: CriticalPath
    ) -> list[str]:
        return [nid for batch in parallel_batches(graph, topo_order) for nid in batch]


STRATEGIES: dict[Strategy, PlanningStrategy] = {
    Strategy.SEQUENTIAL: SequentialStrategy(),
    Strategy.CRITICAL_PATH: CriticalPathFirstStrategy(),
    Strategy.PARALLELIZABLE: ParallelizableStrategy(),
}


def strategy_for(strategy: Strategy | str) -> PlanningStrategy:
    return STRATEGIES[Strategy(strategy)]
