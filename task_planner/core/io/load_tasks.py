from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import yaml

from task_planner.core.errors import PlanLoadError


_PARSERS: dict[str, tuple[str, Callable[[str], Any]]] = {
    ".yaml": ("E_YAML_PARSE", yaml.safe_load),
    ".yml": ("E_YAML_PARSE", yaml.safe_load),
    ".json": ("E_JSON_PARSE", json.loads),
}


def load_tasks(path: str) -> dict[str, Any]:
    """Load a YAML/JSON task file.

    Returns a dict with keys: project (optional), tasks, __file__.
    Task records are passed through untouched; the registry owns shape checking.
    """

    p = Path(path)
    file = str(p)
    if not p.is_file():
        raise PlanLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=file)

    parser = _PARSERS.get(p.suffix.lower())
    if parser is None:
        raise PlanLoadError(
            code="E_UNSUPPORTED_FORMAT",
            message="supported formats are .yaml/.yml and .json",
            file=file,
        )
    parse_code, parse = parser

    try:
        data = parse(p.read_text(encoding="utf-8"))
    except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PlanLoadError(code=parse_code, message=str(e), file=file) from e

    # A bare list is the task list itself.
    if isinstance(data, list):
        data = {"tasks": data}
    if not isinstance(data, dict):
        raise PlanLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object or a list of tasks",
            file=file,
        )

    tasks = data.get("tasks")
    if not isinstance(tasks, list):
        raise PlanLoadError(
            code="E_INVALID_TASKS",
            message="tasks is required and must be an array",
            file=file,
            path="tasks",
        )

    project = data.get("project")
    return {
        "project": project if isinstance(project, str) else None,
        "tasks": tasks,
        "__file__": file,
    }
