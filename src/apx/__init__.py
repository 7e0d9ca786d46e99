"""Provide the public `apx` package exports."""

from __future__ import annotations

from .constants import APX_VERSION as __version__
from .tasks import RunResult, Task, TaskManager, TaskSpec

__all__ = ["RunResult", "Task", "TaskManager", "TaskSpec", "__version__"]
