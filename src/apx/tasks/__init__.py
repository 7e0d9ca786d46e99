"""Sequential task orchestration used by every apx command."""

from __future__ import annotations

from .manager import TaskManager
from .model import (
    RunResult,
    TaskConfigError,
    TaskContext,
    TaskOutcome,
    TaskResult,
    TaskSpec,
)
from .render import NullRenderer, Renderer, RichRenderer
from .task import Task

__all__ = [
    "NullRenderer",
    "Renderer",
    "RichRenderer",
    "RunResult",
    "Task",
    "TaskConfigError",
    "TaskContext",
    "TaskManager",
    "TaskOutcome",
    "TaskResult",
    "TaskSpec",
]
