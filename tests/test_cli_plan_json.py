import json

from typer.testing import CliRunner

from task_planner.cli import app

runner = CliRunner()


def test_cli_plan_json_critical_path_strategy():
    r = runner.invoke(
        app,
        ["plan", "examples/web-app-tasks.json", "--strategy", "critical_path", "--format", "json"],
    )
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["command"] == "plan"
    assert payload["ok"] is True
    plan = payload["plan"]
    assert plan["strategy"] == "critical_path"
    assert plan["critical_path"] == ["setup", "db", "api", "ui", "tests"]
    assert plan["critical_path_duration_hours"] == 36.0
    assert plan["total_duration_hours"] == 47.0
    assert plan["batches"] == [["setup"], ["db", "auth"], ["api"], ["ui"], ["tests", "docs"]]


def test_cli_plan_json_parallelizable_independent():
    r = runner.invoke(
        app,
        ["plan", "examples/independent-tasks.yaml", "--strategy", "parallelizable", "--format", "json"],
    )
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    assert payload["plan"]["batches"] == [["T2", "T4", "T3", "T1", "T5"]]
    assert payload["warning_count"] == 2


def test_cli_plan_json_cycle():
    r = runner.invoke(app, ["plan", "examples/invalid-cycle.yaml", "--format", "json"])
    assert r.exit_code == 2
    payload = json.loads(r.stdout)
    assert payload["plan"] is None
    assert payload["errors"][0]["code"] == "E_CYCLE_DETECTED"


def test_cli_plan_json_out_file(tmp_path):
    out = tmp_path / "plan.json"
    r = runner.invoke(
        app, ["plan", "examples/basic-tasks.yaml", "--format", "json", "--out", str(out)]
    )
    assert r.exit_code == 0
    written = json.loads(out.read_text(encoding="utf-8"))
    assert written["project"] == "scenario-basic"
    assert written["order"] == json.loads(r.stdout)["plan"]["order"]
