from task_planner.core.errors import PlanLoadError
from task_planner.core.io.load_tasks import load_tasks


def test_load_yaml_success():
    data = load_tasks("examples/basic-tasks.yaml")
    assert data["project"] == "scenario-basic"
    assert isinstance(data["tasks"], list)
    assert data["__file__"].endswith("basic-tasks.yaml")


def test_load_json_success():
    data = load_tasks("examples/web-app-tasks.json")
    assert data["project"] == "web-app"
    assert len(data["tasks"]) == 7


def test_load_bare_list(tmp_path):
    p = tmp_path / "tasks.yaml"
    p.write_text("- {id: A, title: a, estimated_duration_hours: 1}\n", encoding="utf-8")
    data = load_tasks(str(p))
    assert data["project"] is None
    assert data["tasks"][0]["id"] == "A"


def test_load_missing_file():
    try:
        load_tasks("examples/does-not-exist.yaml")
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_FILE_NOT_FOUND"


def test_load_unsupported_format(tmp_path):
    p = tmp_path / "tasks.txt"
    p.write_text("hello", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_UNSUPPORTED_FORMAT"


def test_load_bad_json(tmp_path):
    p = tmp_path / "tasks.json"
    p.write_text("{not json", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_JSON_PARSE"


def test_load_tasks_must_be_list(tmp_path):
    p = tmp_path / "tasks.yaml"
    p.write_text("project: x\ntasks: nope\n", encoding="utf-8")
    try:
        load_tasks(str(p))
        assert False, "expected PlanLoadError"
    except PlanLoadError as e:
        assert e.code == "E_INVALID_TASKS"
        assert e.path == "tasks"
