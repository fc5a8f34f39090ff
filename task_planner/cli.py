from __future__ import annotations

import json
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from task_planner.core.analysis.summary import summarize, summarize_text
from task_planner.core.context import DEFAULT_MIN_DURATION_HOURS, PlanningContext
from task_planner.core.errors import PlanError, PlanLoadError, PlanValidationError
from task_planner.core.io.dump_plan import dump_plan, plan_to_dict, report_to_dict
from task_planner.core.io.load_tasks import load_tasks
from task_planner.core.model import Strategy
from task_planner.core.plan.execution_plan import PlanningResult, run_planning
from task_planner.core.suggest.rule_config import InferenceRule, RuleConfigError, load_and_merge
from task_planner.logging_config import setup_logging

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

STRATEGY_NAMES = [s.value for s in Strategy]


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Task dependency planner CLI."""
    setup_logging("DEBUG" if verbose else "WARNING")


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    suggest: bool = typer.Option(
        False, "--suggest/--no-suggest", help="Report keyword-inferred dependencies as warnings"
    ),
    rules_file: Optional[str] = typer.Option(
        None, "--rules-file", help="Optional YAML file to add/override inference rules"
    ),
    min_duration: float = typer.Option(
        DEFAULT_MIN_DURATION_HOURS,
        "--min-duration",
        help="Hours used for tasks with a missing or negative duration",
    ),
) -> None:
    """Validate a task file: cycles, dangling dependencies, warnings."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    data = _load(path, format, "validate")
    ctx = _context(data, suggest=suggest, rules_file=rules_file, min_duration=min_duration)
    result = run_planning(data["tasks"], context=ctx, file=data["__file__"])
    report = result.report

    if format == "json":
        summary = None
        if result.plan is not None:
            s = summarize(result.graph, result.plan)
            summary = {
                "task_count": s.task_count,
                "dependency_count": s.dependency_count,
                "category_counts": s.category_counts,
                "critical_path": list(result.plan.critical_path),
                "critical_path_duration_hours": s.critical_path_duration_hours,
                "total_duration_hours": s.total_duration_hours,
            }
        _emit_json(
            "validate",
            result,
            exit_code=0 if report.is_valid else 2,
            extra={"summary": summary},
        )

    _print_errors(report.errors + report.warnings)
    if not report.is_valid:
        raise typer.Exit(code=2)

    assert result.plan is not None
    typer.echo(summarize_text(summarize(result.graph, result.plan)))


@app.command("plan")
def plan(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    strategy: str = typer.Option(
        "sequential", "--strategy", help="Ordering strategy: " + "|".join(STRATEGY_NAMES)
    ),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    out: Optional[str] = typer.Option(
        None, "--out", help="Also write the plan to this file (.yaml/.yml/.json)"
    ),
    suggest: bool = typer.Option(
        False, "--suggest/--no-suggest", help="Report keyword-inferred dependencies as warnings"
    ),
    rules_file: Optional[str] = typer.Option(
        None, "--rules-file", help="Optional YAML file to add/override inference rules"
    ),
    min_duration: float = typer.Option(
        DEFAULT_MIN_DURATION_HOURS,
        "--min-duration",
        help="Hours used for tasks with a missing or negative duration",
    ),
) -> None:
    """Compute execution order, critical path and parallel batches."""
    _check_format(format, "E_PLAN_UNKNOWN_FORMAT")
    if strategy not in STRATEGY_NAMES:
        _print_errors(
            [
                PlanValidationError(
                    code="E_PLAN_UNKNOWN_STRATEGY",
                    message=f"unknown strategy: {strategy} (choose one of: {', '.join(STRATEGY_NAMES)})",
                    path="strategy",
                )
            ]
        )
        raise typer.Exit(code=2)

    data = _load(path, format, "plan")
    ctx = _context(data, suggest=suggest, rules_file=rules_file, min_duration=min_duration)
    result = run_planning(data["tasks"], strategy=strategy, context=ctx, file=data["__file__"])
    report = result.report

    payload: Optional[dict[str, Any]] = None
    if result.plan is not None:
        payload = plan_to_dict(result.plan, result.critical)
        if out:
            dump_plan({"project": ctx.project, **payload}, out)

    exit_code = 0 if report.is_valid else 2

    if format == "json":
        _emit_json("plan", result, exit_code=exit_code, extra={"plan": payload})

    _print_errors(report.errors + report.warnings)
    if result.plan is None:
        raise typer.Exit(code=2)

    _print_plan_table(result)
    for i, batch in enumerate(result.plan.batches):
        typer.echo(f"Batch {i}: {', '.join(batch)}")
    typer.echo(
        "Critical path: "
        + " -> ".join(result.plan.critical_path)
        + f" ({result.plan.critical_path_duration_hours:g}h)"
    )
    if out:
        typer.echo(f"OK: wrote plan to {out}")
    if exit_code:
        raise typer.Exit(code=exit_code)


@app.command("suggest")
def suggest_cmd(
    path: str = typer.Argument(..., help="Path to a task file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    rules_file: Optional[str] = typer.Option(
        None, "--rules-file", help="Optional YAML file to add/override inference rules"
    ),
) -> None:
    """List dependencies inferred from task titles/details (never applied)."""
    _check_format(format, "E_SUGGEST_UNKNOWN_FORMAT")

    data = _load(path, format, "suggest")
    ctx = _context(data, suggest=True, rules_file=rules_file, min_duration=DEFAULT_MIN_DURATION_HOURS)
    result = run_planning(data["tasks"], context=ctx, file=data["__file__"])

    items = [
        {
            "dependent": s.dependent,
            "prerequisite": s.prerequisite,
            "rule": s.rule,
            "confidence": s.confidence,
            "creates_cycle": s.creates_cycle,
        }
        for s in result.suggestions
    ]

    if format == "json":
        payload = {
            "tool": "task-planner",
            "command": "suggest",
            "project": ctx.project,
            "suggestion_count": len(items),
            "suggestions": items,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    if not items:
        typer.echo("No suggestions.")
        return

    table = Table(title="Suggested dependencies")
    table.add_column("Task")
    table.add_column("May depend on")
    table.add_column("Rule")
    table.add_column("Confidence")
    for s in result.suggestions:
        note = " (cycle)" if s.creates_cycle else ""
        table.add_row(s.dependent, s.prerequisite + note, s.rule, f"{s.confidence:.2f}")
    console.print(table)


@app.command("rules")
def rules(
    rules_file: Optional[str] = typer.Option(
        None, "--rules-file", help="Optional YAML file to add/override inference rules"
    ),
) -> None:
    """List dependency inference rules."""
    rules_list = _load_rules(rules_file)
    typer.echo("Rules:")
    for r in sorted(rules_list, key=lambda r: r.name):
        targets = list(r.prerequisite_keywords) + [f"category:{c}" for c in r.prerequisite_categories]
        typer.echo(f"- {r.name}: {', '.join(r.triggers)} -> {', '.join(targets)} ({r.confidence:g})")


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        err = PlanValidationError(
            code=code,
            message=f"unknown format: {format} (choose one of: text, json)",
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _load(path: str, format: str, command: str) -> dict[str, Any]:
    try:
        return load_tasks(path)
    except PlanLoadError as e:
        if format == "json":
            payload = {
                "tool": "task-planner",
                "command": command,
                "ok": False,
                "error_count": 1,
                "errors": [_to_item(e, "error", "load")],
            }
            typer.echo(json.dumps(payload, indent=2, sort_keys=True))
            raise typer.Exit(code=1)
        _print_errors([e])
        raise typer.Exit(code=1)


def _load_rules(rules_file: Optional[str]) -> tuple[InferenceRule, ...]:
    try:
        return load_and_merge(rules_file)
    except FileNotFoundError:
        _print_errors(
            [
                PlanLoadError(
                    code="E_RULES_FILE_NOT_FOUND",
                    message=f"rules file not found: {rules_file}",
                    path="rules_file",
                )
            ]
        )
        raise typer.Exit(code=1)
    except RuleConfigError as e:
        _print_errors(
            [
                PlanValidationError(
                    code="E_RULES_FILE_INVALID",
                    message=str(e),
                    file=rules_file,
                    path="rules_file",
                )
            ]
        )
        raise typer.Exit(code=2)


def _context(
    data: dict[str, Any], *, suggest: bool, rules_file: Optional[str], min_duration: float
) -> PlanningContext:
    if min_duration < 0:
        _print_errors(
            [
                PlanValidationError(
                    code="E_INVALID_MIN_DURATION",
                    message=f"--min-duration must be >= 0, got {min_duration}",
                    path="min_duration",
                )
            ]
        )
        raise typer.Exit(code=2)
    return PlanningContext(
        project=data.get("project"),
        min_duration_hours=min_duration,
        suggest_dependencies=suggest,
        rules=_load_rules(rules_file),
    )


def _to_item(e: PlanError, severity: str, source: str) -> dict[str, Any]:
    return {
        "code": e.code,
        "message": e.message,
        "task_ids": list(e.task_ids),
        "file": e.file,
        "path": e.path,
        "severity": severity,
        "source": source,
    }


def _emit_json(
    command: str, result: PlanningResult, *, exit_code: int, extra: dict[str, Any]
) -> None:
    report = report_to_dict(result.report)
    payload = {
        "tool": "task-planner",
        "command": command,
        "project": result.registry.project,
        "ok": result.report.is_valid,
        "error_count": len(report["errors"]),
        "warning_count": len(report["warnings"]),
        "errors": report["errors"],
        "warnings": report["warnings"],
        **extra,
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _print_plan_table(result: PlanningResult) -> None:
    assert result.plan is not None and result.critical is not None
    plan_ = result.plan
    registry = result.registry
    batch_of = {nid: i for i, b in enumerate(plan_.batches) for nid in b}
    on_path = set(plan_.critical_path)

    table = Table(title=f"Execution plan ({plan_.strategy.value})")
    table.add_column("#", justify="right")
    table.add_column("Task")
    table.add_column("Title")
    table.add_column("Priority")
    table.add_column("Hours", justify="right")
    table.add_column("Batch", justify="right")
    table.add_column("Slack", justify="right")
    for i, nid in enumerate(plan_.order, start=1):
        task = registry[nid]
        marker = "*" if nid in on_path else ""
        table.add_row(
            str(i),
            nid + marker,
            task.title,
            task.priority,
            f"{task.estimated_duration_hours:g}",
            str(batch_of[nid]),
            f"{result.critical.slack(nid):g}",
        )
    console.print(table)


def _print_errors(errors: list[PlanError]) -> None:
    for e in errors:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="task-planner")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
