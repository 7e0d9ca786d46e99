"""Runtime handle for one executing task specification.

An operation receives its ``Task`` and reports back through it. Terminal
signals (``complete``, ``error``, ``non_fatal_error``, ``disable``) resolve a
single future; ``Task.run()`` waits on that future or on the operation's own
settlement, whichever happens first, and turns the result into exactly one
``TaskResult``.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Iterator
from typing import Any, Optional

from loguru import logger

from .model import TaskContext, TaskOutcome, TaskResult, TaskSpec
from .render import Renderer


SPINNER_INTERVAL_SECONDS = 0.08


def describe_exception(exc: BaseException) -> str:
    message = str(exc)
    return message if message else type(exc).__name__


class Task:
    """Communication surface between a running operation and the task manager."""

    def __init__(self, spec: TaskSpec, context: TaskContext, renderer: Renderer):
        self.spec = spec
        self._context = context
        self._renderer = renderer
        self._title: Optional[str] = None
        self._last_title: Optional[str] = None
        self._status: Optional[str] = None
        self._output: list[str] = []
        self._frame: Optional[int] = None
        self._started_at: Optional[float] = None
        self._outcome: Optional[asyncio.Future[tuple[TaskOutcome, Optional[str]]]] = None

    # -- read-only state ----------------------------------------------------

    @property
    def context(self) -> TaskContext:
        return self._context

    @property
    def title(self) -> str:
        if self._title is not None:
            return self._title
        try:
            self._last_title = self.spec.resolve_title(self._context)
        except Exception as exc:
            # Fall back to the last title that resolved.
            logger.debug("Title of task '{}' raised: {!r}", self._last_title or self.spec._describe(), exc)
            if self._last_title is None:
                return self.spec._describe()
        return self._last_title

    @property
    def status(self) -> Optional[str]:
        return self._status

    @property
    def done(self) -> bool:
        return self._outcome is not None and self._outcome.done()

    # -- operation-facing contract -----------------------------------------

    def complete(self, message: Optional[str] = None) -> None:
        self._terminate(TaskOutcome.COMPLETE, message)

    def error(self, message: str) -> None:
        self._terminate(TaskOutcome.ERROR, str(message))

    def non_fatal_error(self, message: str) -> None:
        self._terminate(TaskOutcome.NON_FATAL_ERROR, str(message))

    def disable(self) -> None:
        self._terminate(TaskOutcome.DISABLED, None)

    def update(self, message: Optional[str] = None) -> None:
        if self.done:
            return
        self._status = message
        self._refresh()

    def set_title(self, title: str) -> None:
        if self.done:
            return
        self._title = str(title)
        self._refresh()

    def post_write(self, text: str) -> None:
        self._output.append(text)

    # -- execution ----------------------------------------------------------

    async def run(self) -> TaskResult:
        """Execute the operation and return once a terminal event has been observed."""
        loop = asyncio.get_running_loop()
        self._outcome = loop.create_future()
        self._started_at = time.monotonic()

        static = self.spec.is_static_wait(self._context)
        self._frame = None if static else 0
        self._renderer.begin(self.title, static=static)
        spinner = None if static else asyncio.ensure_future(self._spin())

        try:
            await self._invoke()
            outcome, message = await self._outcome
        finally:
            if spinner is not None:
                spinner.cancel()
                try:
                    await spinner
                except asyncio.CancelledError:
                    pass

        result = TaskResult(
            title=self.title,
            outcome=outcome,
            message=message,
            output="".join(self._output),
            duration_seconds=time.monotonic() - self._started_at,
        )
        self._status = None
        self._renderer.end(result)
        return result

    async def _invoke(self) -> None:
        try:
            returned = self.spec.operation(self, self._context)
        except Exception as exc:
            logger.debug("Task '{}' raised: {!r}", self.title, exc)
            self.error(describe_exception(exc))
            return

        if inspect.isasyncgen(returned) or (
            hasattr(returned, "__aiter__") and hasattr(returned, "__anext__")
        ):
            returned = self._drain(returned)
        elif isinstance(returned, Iterator):
            returned = self._drain_sync(returned)

        if not inspect.isawaitable(returned):
            self._complete_implicitly(returned)
            return

        pending = asyncio.ensure_future(returned)
        await asyncio.wait({pending, self._outcome}, return_when=asyncio.FIRST_COMPLETED)

        if self.done:
            # Explicit signal wins; whatever is still running is left alone.
            if pending.done():
                self._discard(pending)
            else:
                pending.add_done_callback(self._discard)
            return

        if pending.cancelled():
            self.error("Task was cancelled")
            return
        exc = pending.exception()
        if exc is not None:
            logger.debug("Task '{}' failed: {!r}", self.title, exc)
            self.error(describe_exception(exc))
            return
        self._complete_implicitly(pending.result())

    async def _drain(self, stream: Any) -> None:
        async for value in stream:
            if self.done:
                break
            self.update(str(value))

    async def _drain_sync(self, stream: Iterator[Any]) -> None:
        for value in stream:
            if self.done:
                break
            self.update(str(value))
            await asyncio.sleep(0)

    def _complete_implicitly(self, returned: Any) -> None:
        if self.done:
            return
        self.complete(returned if isinstance(returned, str) else None)

    def _discard(self, future: asyncio.Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.debug("Ignoring failure of '{}' after it terminated: {!r}", self.title, exc)

    async def _spin(self) -> None:
        while True:
            await asyncio.sleep(SPINNER_INTERVAL_SECONDS)
            self._frame = (self._frame or 0) + 1
            self._refresh()

    # -- internals ------------------------------------------------------------

    def _terminate(self, outcome: TaskOutcome, message: Optional[str]) -> None:
        if self._outcome is None:
            raise RuntimeError("Task has not been started")
        if self._outcome.done():
            logger.warning(
                "Task '{}' signalled {} after it had already terminated; ignoring",
                self.title,
                outcome.value,
            )
            return
        self._outcome.set_result((outcome, message))

    def _refresh(self) -> None:
        if self._outcome is None:
            return
        self._renderer.progress(self.title, self._frame, self._status)
