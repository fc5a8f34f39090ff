from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Collection, Literal, Optional

from task_planner.core.errors import NON_BLOCKING_CODES, PlanError, PlanWarning


Category = Literal["setup", "infrastructure", "feature", "testing", "documentation"]
Priority = Literal["low", "medium", "high"]

CATEGORIES: tuple[str, ...] = ("setup", "infrastructure", "feature", "testing", "documentation")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high")

# Higher rank is scheduled first when several tasks are eligible.
PRIORITY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2}


class Strategy(str, Enum):
    SEQUENTIAL = "sequential"
    CRITICAL_PATH = "critical_path"
    PARALLELIZABLE = "parallelizable"


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    estimated_duration_hours: float
    category: Category = "feature"
    priority: Priority = "medium"
    dependencies: tuple[str, ...] = ()

    details: str = ""


@dataclass(frozen=True)
class DependencyEdge:
    """Points from the task that has the dependency to the task it depends on."""

    dependent: str
    prerequisite: str


@dataclass(frozen=True)
class TaskRegistry:
    """Immutable task snapshot for one planning run, in input order."""

    tasks: tuple[Task, ...]
    project: Optional[str] = None
    file: Optional[str] = None
    # task id -> position of its record in the caller's input, rejected records included
    source_index: dict[str, int] = field(default_factory=dict, repr=False, compare=False)

    _by_id: dict[str, Task] = field(init=False, repr=False, compare=False)
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {t.id: t for t in self.tasks})
        object.__setattr__(self, "_index", {t.id: i for i, t in enumerate(self.tasks)})

    @property
    def ids(self) -> list[str]:
        return [t.id for t in self.tasks]

    def get(self, task_id: str) -> Optional[Task]:
        return self._by_id.get(task_id)

    def __getitem__(self, task_id: str) -> Task:
        return self._by_id[task_id]

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._by_id

    def __len__(self) -> int:
        return len(self.tasks)

    def index_of(self, task_id: str) -> int:
        return self._index[task_id]

    def input_index(self, task_id: str) -> int:
        """Position of the task's record in the input, for `tasks[i]` error paths."""
        return self.source_index.get(task_id, self._index[task_id])

    def rank_key(self, task_id: str) -> tuple[int, int]:
        """Sort key for the tie-break rule: higher priority, then input order."""
        task = self._by_id[task_id]
        return (-PRIORITY_RANK[task.priority], self._index[task_id])


@dataclass(frozen=True)
class TaskGraph:
    registry: TaskRegistry
    raw_edges: tuple[DependencyEdge, ...]
    prerequisites: dict[str, tuple[str, ...]]  # dependent -> prerequisites
    dependents: dict[str, tuple[str, ...]]  # prerequisite -> dependents
    dangling: tuple[DependencyEdge, ...]

    @property
    def nodes(self) -> list[str]:
        return self.registry.ids

    @property
    def edges(self) -> list[DependencyEdge]:
        return [
            DependencyEdge(dependent=nid, prerequisite=p)
            for nid in self.nodes
            for p in self.prerequisites.get(nid, ())
        ]

    # Incremental queries for callers that execute a plan task by task.
    # Dangling references are not part of the adjacency and never block readiness.

    def root_tasks(self) -> list[str]:
        """Tasks without prerequisites, in input order."""
        return [nid for nid in self.nodes if not self.prerequisites.get(nid)]

    def all_prerequisites(self, task_id: str) -> list[str]:
        """Transitive prerequisites of `task_id`, in input order, excluding itself."""
        return self._closure(task_id, self.prerequisites)

    def all_dependents(self, task_id: str) -> list[str]:
        """Tasks that transitively depend on `task_id`, in input order, excluding itself."""
        return self._closure(task_id, self.dependents)

    def is_ready(self, task_id: str, completed: Collection[str]) -> bool:
        if task_id not in self.registry:
            raise KeyError(task_id)
        return all(p in completed for p in self.prerequisites.get(task_id, ()))

    def ready_tasks(self, completed: Collection[str]) -> list[str]:
        """Tasks not yet completed whose prerequisites all are, in input order."""
        done = set(completed)
        return [nid for nid in self.nodes if nid not in done and self.is_ready(nid, done)]

    def _closure(self, task_id: str, adjacency: dict[str, tuple[str, ...]]) -> list[str]:
        if task_id not in self.registry:
            raise KeyError(task_id)
        seen: set[str] = set()
        stack = list(adjacency.get(task_id, ()))
        while stack:
            cur = stack.pop()
            if cur in seen:
                continue
            seen.add(cur)
            stack.extend(adjacency.get(cur, ()))
        seen.discard(task_id)
        return [nid for nid in self.nodes if nid in seen]


@dataclass(frozen=True)
class CycleReport:
    has_cycle: bool
    cycles: list[list[str]]  # each closed: first id == last id


@dataclass(frozen=True)
class CriticalPath:
    task_ids: list[str]
    duration_hours: float
    earliest_start: dict[str, float] = field(default_factory=dict)
    earliest_finish: dict[str, float] = field(default_factory=dict)
    latest_finish: dict[str, float] = field(default_factory=dict)

    def slack(self, task_id: str) -> float:
        return self.latest_finish[task_id] - self.earliest_finish[task_id]


@dataclass(frozen=True)
class ValidationResult:
    errors: list[PlanError]
    warnings: list[PlanWarning]

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    @property
    def is_blocked(self) -> bool:
        """True when no plan may be emitted."""
        return any(e.code not in NON_BLOCKING_CODES for e in self.errors)

    def codes(self) -> list[str]:
        return [e.code for e in self.errors] + [w.code for w in self.warnings]


@dataclass(frozen=True)
class ExecutionPlan:
    strategy: Strategy
    order: list[str]
    critical_path: list[str]
    critical_path_duration_hours: float
    batches: list[list[str]]
    total_duration_hours: float
