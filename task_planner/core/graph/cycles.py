from __future__ import annotations

from typing import Iterator

from task_planner.core.model import CycleReport, TaskGraph


def detect_cycles(graph: TaskGraph) -> CycleReport:
    """Report every dependency cycle in one pass.

    Depth-first over dependent -> prerequisite edges, visiting nodes and
    prerequisites in input order. Each cycle is closed (first id == last id)
    and follows edges present in the graph. The same cycle reached from a
    different starting node is reported once.

    The walk keeps its own stack of frames, so chain depth is not bounded by
    the interpreter's recursion limit.
    """

    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in graph.nodes}
    path: list[str] = []
    emitted: set[tuple[str, ...]] = set()
    cycles: list[list[str]] = []

    for root in graph.nodes:
        if state[root] != WHITE:
            continue

        state[root] = GRAY
        path.append(root)
        frames: list[tuple[str, Iterator[str]]] = [(root, iter(graph.prerequisites.get(root, ())))]

        while frames:
            u, prereqs = frames[-1]
            v = next(prereqs, None)
            if v is None:
                frames.pop()
                path.pop()
                state[u] = BLACK
                continue

            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = path[path.index(v):] + [v]
                key = _rotation_key(cycle[:-1])
                if key not in emitted:
                    emitted.add(key)
                    cycles.append(cycle)
            elif state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                frames.append((v, iter(graph.prerequisites.get(v, ()))))

    return CycleReport(has_cycle=bool(cycles), cycles=cycles)


def _rotation_key(ring: list[str]) -> tuple[str, ...]:
    start = ring.index(min(ring))
    return tuple(ring[start:] + ring[:start])
