"""Static task specifications and the outcome types produced by running them.

A ``TaskSpec`` is the caller-authored description of one step. The manager
evaluates its predicates against the shared context dict and hands it to a
``Task`` for execution. Every executed (or skipped) spec yields exactly one
``TaskResult``; a whole run yields one ``RunResult``.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Union


TaskContext = dict[str, Any]

Title = Union[str, Callable[[TaskContext], str]]
Predicate = Callable[[TaskContext], bool]
SkipPredicate = Callable[[TaskContext], Union[bool, str, None, Awaitable[Union[bool, str, None]]]]
Flag = Union[bool, Callable[[TaskContext], bool]]


class TaskConfigError(ValueError):
    """Raised when a task list or manager is configured incorrectly."""


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class TaskOutcome(str, Enum):
    COMPLETE = "complete"
    ERROR = "error"
    NON_FATAL_ERROR = "non_fatal_error"
    DISABLED = "disabled"
    SKIPPED = "skipped"

    @property
    def fatal(self) -> bool:
        return self is TaskOutcome.ERROR


@dataclass(frozen=True)
class TaskResult:
    """Terminal state of one task, as observed by the manager."""
    title: str
    outcome: TaskOutcome
    message: Optional[str] = None
    output: str = ""  # flushed post-write text
    duration_seconds: float = 0.0

    @property
    def fatal(self) -> bool:
        return self.outcome.fatal

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "outcome": self.outcome.value,
            "message": self.message,
            "output": self.output,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class RunResult:
    """Outcome of a whole ``TaskManager.run()``."""
    success: bool
    results: list[TaskResult] = field(default_factory=list)
    context: TaskContext = field(default_factory=dict)
    error: Optional[str] = None
    stopped_early: bool = False
    duration_seconds: float = 0.0

    def __bool__(self) -> bool:
        return self.success

    @property
    def failed_task(self) -> Optional[TaskResult]:
        for result in self.results:
            if result.fatal:
                return result
        return None

    def outcomes(self) -> list[TaskOutcome]:
        return [r.outcome for r in self.results]


# ---------------------------------------------------------------------------
# Specification
# ---------------------------------------------------------------------------

_MAPPING_ALIASES = {
    "task": "operation",
    "staticWait": "static_wait",
}

_REQUIRED_FIELDS = ("title", "operation")


def _resolve_flag(flag: Flag, ctx: TaskContext) -> bool:
    if callable(flag):
        return bool(flag(ctx))
    return bool(flag)


@dataclass(frozen=True)
class TaskSpec:
    """Immutable description of one step in a task list.

    ``title`` may be a plain string or a function of the context; functions are
    re-evaluated on every render so later context mutations show up in the
    displayed title.
    """
    title: Title
    operation: Callable[..., Any]
    enabled: Optional[Predicate] = None
    skip: Optional[SkipPredicate] = None
    static_wait: Flag = False
    final: Flag = False

    def __post_init__(self) -> None:
        if not isinstance(self.title, str) and not callable(self.title):
            raise TaskConfigError(f"Task title must be a string or callable, got {type(self.title).__name__}")
        if not callable(self.operation):
            raise TaskConfigError(f"Task '{self._describe()}' has no callable operation")
        for name in ("enabled", "skip"):
            value = getattr(self, name)
            if value is not None and not callable(value):
                raise TaskConfigError(f"Task '{self._describe()}' field '{name}' must be callable")
        for name in ("static_wait", "final"):
            value = getattr(self, name)
            if not isinstance(value, bool) and not callable(value):
                raise TaskConfigError(f"Task '{self._describe()}' field '{name}' must be a bool or callable")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskSpec":
        """Build a spec from a plain mapping (``task``/``staticWait`` aliases accepted)."""
        fields: dict[str, Any] = {}
        for key, value in data.items():
            name = _MAPPING_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__:
                raise TaskConfigError(f"Unknown task field '{key}'")
            fields[name] = value
        missing = [name for name in _REQUIRED_FIELDS if fields.get(name) is None]
        if missing:
            raise TaskConfigError(f"Task specification missing required field(s): {', '.join(missing)}")
        return cls(**fields)

    def _describe(self) -> str:
        return self.title if isinstance(self.title, str) else getattr(self.title, "__name__", "<title>")

    def resolve_title(self, ctx: TaskContext) -> str:
        if isinstance(self.title, str):
            return self.title
        return str(self.title(ctx))

    def is_enabled(self, ctx: TaskContext) -> bool:
        if self.enabled is None:
            return True
        return bool(self.enabled(ctx))

    async def resolve_skip(self, ctx: TaskContext) -> Union[bool, str]:
        """Evaluate ``skip``; returns ``False``, ``True`` or a non-empty reason string."""
        if self.skip is None:
            return False
        value = self.skip(ctx)
        if inspect.isawaitable(value):
            value = await value
        if isinstance(value, str):
            return value if value else False
        return bool(value)

    def is_static_wait(self, ctx: TaskContext) -> bool:
        return _resolve_flag(self.static_wait, ctx)

    def is_final(self, ctx: TaskContext) -> bool:
        return _resolve_flag(self.final, ctx)
