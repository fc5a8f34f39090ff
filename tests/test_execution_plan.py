import logging

from task_planner.core.context import PlanningContext
from task_planner.core.errors import CycleDetectedError
from task_planner.core.graph.build_graph import build_graph
from task_planner.core.io.load_tasks import load_tasks
from task_planner.core.model import Strategy, Task
from task_planner.core.plan.execution_plan import build_execution_plan, plan_graph, run_planning
from task_planner.core.registry.task_registry import build_registry


def _tasks(path):
    return load_tasks(path)["tasks"]


def test_scenario_linear_chain_with_fork():
    plan, report = build_execution_plan(_tasks("examples/basic-tasks.yaml"))
    assert report.is_valid
    assert plan is not None
    assert plan.strategy is Strategy.SEQUENTIAL
    assert plan.order == ["A", "B", "C", "D"]
    assert plan.critical_path == ["A", "B", "D"]
    assert plan.critical_path_duration_hours == 9.0
    assert plan.batches == [["A"], ["B", "C"], ["D"]]
    assert plan.total_duration_hours == 10.0


def test_scenario_two_node_cycle():
    plan, report = build_execution_plan(_tasks("examples/invalid-cycle.yaml"))
    assert plan is None
    assert report.is_valid is False
    cycle_errors = [e for e in report.errors if e.code == "E_CYCLE_DETECTED"]
    assert len(cycle_errors) == 1
    assert cycle_errors[0].task_ids == ("X", "Y", "X")


def test_scenario_dangling_dependency_still_plans():
    plan, report = build_execution_plan(_tasks("examples/invalid-dangling.yaml"))
    assert report.is_valid is False
    assert report.errors[0].code == "E_DANGLING_DEPENDENCY"
    assert report.errors[0].task_ids == ("Z", "missing-1")
    assert plan is not None
    assert plan.order == ["W", "Z"]


def test_scenario_independent_tasks():
    tasks = _tasks("examples/independent-tasks.yaml")
    plan, report = build_execution_plan(tasks, Strategy.SEQUENTIAL)
    assert plan is not None
    assert plan.order == ["T2", "T4", "T3", "T1", "T5"]

    plan, _ = build_execution_plan(tasks, "parallelizable")
    assert plan is not None
    assert plan.batches == [["T2", "T4", "T3", "T1", "T5"]]
    assert plan.order == ["T2", "T4", "T3", "T1", "T5"]

    isolated = [w.task_ids[0] for w in report.warnings if w.code == "W_ISOLATED_TASK"]
    assert isolated == ["T1", "T3"]


def test_plan_accepts_task_objects():
    tasks = [
        Task(id="a", title="Setup", estimated_duration_hours=1, category="setup"),
        Task(id="b", title="Feature", estimated_duration_hours=2, dependencies=("a",)),
    ]
    plan, report = build_execution_plan(tasks, Strategy.CRITICAL_PATH)
    assert report.is_valid
    assert plan is not None
    assert plan.order == ["a", "b"]
    assert plan.critical_path == ["a", "b"]


def test_registry_errors_block_the_plan():
    plan, report = build_execution_plan(_tasks("examples/invalid-duplicate-id.yaml"))
    assert plan is None
    assert report.codes() == ["E_DUPLICATE_ID"]


def test_invalid_duration_uses_context_minimum():
    items = [
        {"id": "A", "title": "Setup", "category": "setup"},
        {"id": "B", "title": "Build", "estimated_duration_hours": 2, "dependencies": ["A"]},
    ]
    plan, report = build_execution_plan(items, context=PlanningContext(min_duration_hours=3))
    assert report.is_valid
    assert [w.code for w in report.warnings] == ["W_INVALID_DURATION"]
    assert plan is not None
    assert plan.critical_path_duration_hours == 5.0


def test_suggestions_never_change_the_plan():
    tasks = _tasks("examples/web-app-tasks.json")
    plain, _ = build_execution_plan(tasks)
    suggested, report = build_execution_plan(
        tasks, context=PlanningContext(suggest_dependencies=True)
    )
    assert plain == suggested
    assert report.is_valid
    assert {w.code for w in report.warnings} == {"W_INFERRED_DEPENDENCY"}


def test_plan_graph_refuses_cyclic_graph():
    registry, _, _ = build_registry(_tasks("examples/invalid-cycle.yaml"))
    try:
        plan_graph(build_graph(registry))
        assert False, "expected CycleDetectedError"
    except CycleDetectedError as e:
        assert e.code == "E_CYCLE_DETECTED"


def test_run_planning_keeps_intermediate_results():
    result = run_planning(_tasks("examples/basic-tasks.yaml"), strategy="parallelizable")
    assert result.cycles.has_cycle is False
    assert result.critical is not None
    assert result.critical.slack("C") == 2.0
    assert result.suggestions == []
    assert result.plan is not None
    assert result.plan.strategy is Strategy.PARALLELIZABLE


def test_run_planning_logs_outcome(caplog):
    caplog.set_level(logging.INFO, logger="task_planner.core.plan.execution_plan")
    run_planning(_tasks("examples/basic-tasks.yaml"), context=PlanningContext(project="demo"))
    assert "planned 4 task(s) for demo" in caplog.text

    run_planning(_tasks("examples/invalid-cycle.yaml"))
    assert "planning blocked" in caplog.text


def test_long_chain_plans_without_recursion_limits():
    n = 2000
    ids = [f"T{i:04d}" for i in range(n)]
    items = [
        {"id": ids[i], "title": f"Step {i}", "estimated_duration_hours": 1, "dependencies": [ids[i - 1]] if i else []}
        for i in reversed(range(n))
    ]
    plan, report = build_execution_plan(items)
    assert report.is_valid
    assert plan is not None
    assert plan.order == ids
    assert len(plan.batches) == n
    assert plan.critical_path_duration_hours == float(n)


def test_task_objects_with_bad_priority_are_reported():
    tasks = [
        Task(id="a", title="Setup", estimated_duration_hours=1, category="setup"),
        Task(id="b", title="Feature", estimated_duration_hours=1, priority="urgent", dependencies=("a",)),  # type: ignore[arg-type]
    ]
    plan, report = build_execution_plan(tasks)
    assert plan is None
    assert report.codes() == ["E_INVALID_ENUM"]
    assert report.errors[0].path == "tasks[1].priority"
