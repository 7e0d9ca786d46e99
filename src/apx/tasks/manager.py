"""Sequential task manager.

The manager walks its specification list strictly in order. For each spec it
checks ``enabled``, then ``skip``, then runs the task and waits for its single
terminal event before even looking at the next spec:

1. ``enabled`` false  -> omitted entirely, nothing rendered or recorded
2. ``skip`` truthy    -> rendered as skipped, operation never called
3. otherwise          -> executed; a fatal error aborts the run
4. ``final`` true     -> the run stops after this task, successfully

Tasks share one unsynchronised context dict, so there is no
concurrent mode.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Iterable, Mapping, Optional, Union

from loguru import logger

from .model import RunResult, TaskConfigError, TaskContext, TaskOutcome, TaskResult, TaskSpec
from .render import Renderer, RichRenderer
from .task import Task, describe_exception


SpecLike = Union[TaskSpec, Mapping[str, Any]]


def _coerce_spec(spec: SpecLike) -> TaskSpec:
    if isinstance(spec, TaskSpec):
        return spec
    if isinstance(spec, Mapping):
        return TaskSpec.from_mapping(spec)
    raise TaskConfigError(f"Expected a TaskSpec or mapping, got {type(spec).__name__}")


class TaskManager:
    """Run an ordered list of task specifications against a shared context."""

    def __init__(
        self,
        specs: Iterable[SpecLike] = (),
        *,
        renderer: Optional[Renderer] = None,
        concurrent: bool = False,
    ) -> None:
        if concurrent:
            raise TaskConfigError(
                "Concurrent task execution is not supported: tasks share an unsynchronised context"
            )
        self._specs: list[TaskSpec] = [_coerce_spec(spec) for spec in specs]
        self.renderer = renderer or RichRenderer()

    @property
    def specs(self) -> tuple[TaskSpec, ...]:
        return tuple(self._specs)

    def add_task(self, spec: Optional[SpecLike] = None, **fields: Any) -> TaskSpec:
        """Append a spec, given either as a ``TaskSpec``/mapping or as keyword fields."""
        if spec is not None and fields:
            raise TaskConfigError("Pass either a spec or keyword fields, not both")
        coerced = _coerce_spec(spec if spec is not None else fields)
        self._specs.append(coerced)
        return coerced

    def run_sync(self, context: Optional[TaskContext] = None) -> RunResult:
        return asyncio.run(self.run(context))

    async def run(self, context: Optional[TaskContext] = None) -> RunResult:
        """Drive every eligible task to a terminal state, in order.

        The context dict is shared by reference, so callers can inspect what the
        tasks wrote into it once the run returns.
        """
        ctx: TaskContext = context if context is not None else {}
        run = RunResult(success=True, context=ctx)
        started = time.monotonic()

        try:
            for index, spec in enumerate(self._specs):
                result = await self._run_spec(index, spec, ctx)
                if result is None:
                    continue
                run.results.append(result)

                if result.fatal:
                    run.success = False
                    run.error = result.message
                    logger.debug("Task {} failed, aborting run: {}", index, result.message)
                    break

                if result.outcome != TaskOutcome.SKIPPED and spec.is_final(ctx):
                    run.stopped_early = index < len(self._specs) - 1
                    logger.debug("Task {} is final, stopping run", index)
                    break
        except Exception as exc:
            # Boundary for failures outside any task (e.g. a raising ``final`` flag).
            logger.exception("Task run aborted")
            run.success = False
            run.error = describe_exception(exc)
        finally:
            self.renderer.close()
            run.duration_seconds = time.monotonic() - started

        logger.debug(
            "Task run {} after {} task(s) in {:.2f}s",
            "succeeded" if run.success else "failed",
            len(run.results),
            run.duration_seconds,
        )
        return run

    async def _run_spec(self, index: int, spec: TaskSpec, ctx: TaskContext) -> Optional[TaskResult]:
        try:
            if not spec.is_enabled(ctx):
                logger.debug("Task {} disabled, omitting", index)
                return None
            skip = await spec.resolve_skip(ctx)
            spec.resolve_title(ctx)
        except Exception as exc:
            return self._fail_before_start(spec, ctx, exc)

        if skip:
            result = TaskResult(
                title=spec.resolve_title(ctx),
                outcome=TaskOutcome.SKIPPED,
                message=skip if isinstance(skip, str) else None,
            )
            logger.debug("Task {} skipped: {}", index, result.message or "")
            self.renderer.end(result)
            return result

        task = Task(spec, ctx, self.renderer)
        logger.debug("Task {} starting: {}", index, task.title)
        result = await task.run()
        logger.debug("Task {} finished: {}", index, result.outcome.value)
        return result

    def _fail_before_start(self, spec: TaskSpec, ctx: TaskContext, exc: Exception) -> TaskResult:
        # No Task exists yet, so the failure line is rendered here and only here.
        try:
            title = spec.resolve_title(ctx)
        except Exception:
            title = spec._describe()
        logger.debug("Task '{}' predicate raised: {!r}", title, exc)
        result = TaskResult(title=title, outcome=TaskOutcome.ERROR, message=describe_exception(exc))
        self.renderer.end(result)
        return result
