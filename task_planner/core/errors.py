from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlanError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    task_ids: tuple[str, ...] = ()
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<tasks>"
        return f"{loc}: {self.code}: {self.message}"


class PlanLoadError(PlanError):
    pass


class PlanValidationError(PlanError):
    pass


class PlanWarning(PlanError):
    """Non-blocking finding. Never affects validity."""


class CycleDetectedError(PlanValidationError):
    pass


# Errors that drop a single edge but still allow a plan to be produced.
NON_BLOCKING_CODES: frozenset[str] = frozenset({"E_DANGLING_DEPENDENCY"})
