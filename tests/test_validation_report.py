from task_planner.core.errors import CycleDetectedError
from task_planner.core.graph.build_graph import build_graph
from task_planner.core.graph.cycles import detect_cycles
from task_planner.core.io.load_tasks import load_tasks
from task_planner.core.registry.task_registry import build_registry
from task_planner.core.suggest.infer_dependencies import SuggestedEdge
from task_planner.core.validate.report import build_report


def _report_for(path, suggestions=None):
    data = load_tasks(path)
    registry, errors, warnings = build_registry(data["tasks"], file=data["__file__"])
    graph = build_graph(registry)
    return build_report(
        graph,
        detect_cycles(graph),
        registry_errors=errors,
        registry_warnings=warnings,
        suggestions=suggestions,
    )


def test_report_clean_for_basic_tasks():
    report = _report_for("examples/basic-tasks.yaml")
    assert report.errors == []
    assert report.warnings == []
    assert report.is_valid is True
    assert report.is_blocked is False


def test_report_dangling_dependency_is_not_blocking():
    report = _report_for("examples/invalid-dangling.yaml")
    assert [e.code for e in report.errors] == ["E_DANGLING_DEPENDENCY"]
    err = report.errors[0]
    assert err.task_ids == ("Z", "missing-1")
    assert err.path == "tasks[1].dependencies"
    assert err.file.endswith("invalid-dangling.yaml")
    assert report.is_valid is False
    assert report.is_blocked is False
    # Z still declares a dependency, so it is not isolated.
    assert report.warnings == []


def test_report_cycle_names_the_literal_path():
    report = _report_for("examples/invalid-cycle.yaml")
    assert [e.code for e in report.errors] == ["E_CYCLE_DETECTED"]
    assert isinstance(report.errors[0], CycleDetectedError)
    assert report.errors[0].task_ids == ("X", "Y", "X")
    assert report.is_blocked is True


def test_report_duplicate_id_blocks():
    report = _report_for("examples/invalid-duplicate-id.yaml")
    assert report.codes() == ["E_DUPLICATE_ID"]
    assert report.is_blocked is True


def test_report_isolated_tasks_skip_setup():
    report = _report_for("examples/independent-tasks.yaml")
    assert report.errors == []
    assert [w.code for w in report.warnings] == ["W_ISOLATED_TASK", "W_ISOLATED_TASK"]
    assert [w.task_ids for w in report.warnings] == [("T1",), ("T3",)]
    assert report.is_valid is True


def test_report_inferred_dependency_is_a_warning():
    suggestion = SuggestedEdge(
        dependent="D", prerequisite="A", rule="demo", confidence=0.4, creates_cycle=False
    )
    report = _report_for("examples/basic-tasks.yaml", suggestions=[suggestion])
    assert report.is_valid is True
    assert [w.code for w in report.warnings] == ["W_INFERRED_DEPENDENCY"]
    assert report.warnings[0].task_ids == ("D", "A")
    assert "confidence 0.40" in report.warnings[0].message


def test_report_flags_suggestions_that_would_close_a_cycle():
    suggestion = SuggestedEdge(
        dependent="A", prerequisite="D", rule="demo", confidence=0.4, creates_cycle=True
    )
    report = _report_for("examples/basic-tasks.yaml", suggestions=[suggestion])
    assert "would create a cycle" in report.warnings[0].message


def _report_for_items(items):
    registry, errors, warnings = build_registry(items)
    graph = build_graph(registry)
    return build_report(
        graph, detect_cycles(graph), registry_errors=errors, registry_warnings=warnings
    )


def test_report_paths_point_at_input_records_after_rejections():
    report = _report_for_items(
        [
            {"id": "bad", "title": "Bad", "estimated_duration_hours": 1, "priority": "urgent"},
            {"id": "W", "title": "Env", "estimated_duration_hours": 1, "category": "setup"},
            {"id": "Z", "title": "Feature", "estimated_duration_hours": 1, "dependencies": ["W", "missing-1"]},
        ]
    )
    assert [e.code for e in report.errors] == ["E_INVALID_ENUM", "E_DANGLING_DEPENDENCY"]
    assert report.errors[0].path == "tasks[0].priority"
    assert report.errors[1].path == "tasks[2].dependencies"


def test_report_cycle_path_skips_duplicate_records():
    report = _report_for_items(
        [
            {"id": "X", "title": "x", "estimated_duration_hours": 1, "dependencies": ["Y"]},
            {"id": "X", "title": "again", "estimated_duration_hours": 1},
            {"id": "Y", "title": "y", "estimated_duration_hours": 1, "dependencies": ["X"]},
        ]
    )
    cycle_errors = [e for e in report.errors if e.code == "E_CYCLE_DETECTED"]
    assert cycle_errors[0].path == "tasks[0].dependencies"
    dup = [e for e in report.errors if e.code == "E_DUPLICATE_ID"][0]
    assert dup.path == "tasks[1].id"
