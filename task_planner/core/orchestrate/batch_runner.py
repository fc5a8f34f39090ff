from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from task_planner.core.model import ExecutionPlan, Task, TaskGraph

logger = logging.getLogger(__name__)

FailurePolicy = Literal["degrade", "skip"]


class TaskWorker(Protocol):
    def __call__(self, task: Task, inputs: dict[str, Any], degraded: bool) -> Any: ...


@dataclass(frozen=True)
class TaskOutcome:
    task_id: str
    batch: int
    ok: bool
    output: Any = None
    error: Optional[str] = None
    degraded: bool = False
    skipped: bool = False


@dataclass(frozen=True)
class BatchRunResult:
    outcomes: dict[str, TaskOutcome]
    batches_run: int

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes.values())

    @property
    def failed(self) -> list[str]:
        return [nid for nid, o in self.outcomes.items() if not o.ok and not o.skipped]

    @property
    def skipped(self) -> list[str]:
        return [nid for nid, o in self.outcomes.items() if o.skipped]


def run_batches(
    graph: TaskGraph,
    plan: ExecutionPlan,
    worker: TaskWorker,
    *,
    workers: int = 3,
    on_failure: FailurePolicy = "degrade",
) -> BatchRunResult:
    """Run a per-task callable batch by batch.

    Tasks inside a batch run concurrently; batch k+1 starts only after every
    task of batch k has finished. Each call receives the outputs of its
    successful direct prerequisites. A failing task never aborts the run:
    with on_failure="degrade" its dependents still run with degraded=True,
    with on_failure="skip" they (and their dependents) are skipped.
    """

    if on_failure not in ("degrade", "skip"):
        raise ValueError(f"unknown failure policy: {on_failure}")

    outcomes: dict[str, TaskOutcome] = {}

    for batch_idx, batch in enumerate(plan.batches):
        runnable: list[tuple[Task, dict[str, Any], bool]] = []
        for nid in batch:
            prereqs = [outcomes[p] for p in graph.prerequisites.get(nid, ())]
            upstream_bad = any((not p.ok) or p.degraded for p in prereqs)
            if upstream_bad and on_failure == "skip":
                outcomes[nid] = TaskOutcome(
                    task_id=nid,
                    batch=batch_idx,
                    ok=False,
                    error="skipped: a prerequisite did not complete",
                    skipped=True,
                )
                continue
            inputs = {p.task_id: p.output for p in prereqs if p.ok}
            runnable.append((graph.registry[nid], inputs, upstream_bad))

        if not runnable:
            continue

        with ThreadPoolExecutor(max_workers=max(1, min(workers, len(runnable)))) as ex:
            futures = {
                ex.submit(worker, task, inputs, degraded): (task.id, degraded)
                for task, inputs, degraded in runnable
            }
            for f in as_completed(futures):
                nid, degraded = futures[f]
                try:
                    outcomes[nid] = TaskOutcome(
                        task_id=nid, batch=batch_idx, ok=True, output=f.result(), degraded=degraded
                    )
                except Exception as e:
                    logger.warning("task %s failed in batch %d: %s", nid, batch_idx, e)
                    outcomes[nid] = TaskOutcome(
                        task_id=nid, batch=batch_idx, ok=False, error=str(e), degraded=degraded
                    )

    ordered = {nid: outcomes[nid] for nid in plan.order if nid in outcomes}
    return BatchRunResult(outcomes=ordered, batches_run=len(plan.batches))
