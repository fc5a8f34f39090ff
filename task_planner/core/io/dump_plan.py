from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml

from task_planner.core.errors import PlanError
from task_planner.core.model import CriticalPath, ExecutionPlan, ValidationResult


def issue_to_dict(e: PlanError, severity: str) -> dict[str, Any]:
    return {
        "code": e.code,
        "message": e.message,
        "task_ids": list(e.task_ids),
        "file": e.file,
        "path": e.path,
        "severity": severity,
    }


def report_to_dict(report: ValidationResult) -> dict[str, Any]:
    return {
        "is_valid": report.is_valid,
        "errors": [issue_to_dict(e, "error") for e in report.errors],
        "warnings": [issue_to_dict(w, "warning") for w in report.warnings],
    }


def plan_to_dict(plan: ExecutionPlan, critical: Optional[CriticalPath] = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "strategy": plan.strategy.value,
        "order": list(plan.order),
        "critical_path": list(plan.critical_path),
        "critical_path_duration_hours": plan.critical_path_duration_hours,
        "total_duration_hours": plan.total_duration_hours,
        "batches": [list(b) for b in plan.batches],
    }
    if critical is not None:
        out["schedule"] = {
            nid: {
                "earliest_start": critical.earliest_start[nid],
                "earliest_finish": critical.earliest_finish[nid],
                "slack": critical.slack(nid),
            }
            for nid in plan.order
        }
    return out


def dump_plan(payload: dict[str, Any], path: str) -> None:
    """Write a plan payload as YAML or JSON depending on the file suffix."""
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        if p.suffix.lower() == ".json":
            json.dump(payload, f, indent=2)
            f.write("\n")
        else:
            yaml.safe_dump(payload, f, sort_keys=False, default_flow_style=False, allow_unicode=True)
