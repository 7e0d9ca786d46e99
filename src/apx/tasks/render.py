"""Terminal presentation of task lifecycle events.

Renderers only see plain titles, frame numbers and ``TaskResult`` values, so
they can be swapped without touching scheduling. ``RichRenderer`` draws the
running task with a transient ``rich.live.Live`` display and prints the final
line once the task terminates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console, Group
from rich.live import Live
from rich.text import Text

from .model import TaskOutcome, TaskResult


SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
STATIC_SYMBOL = ">"
SUCCESS_SYMBOL = "✔"
FAILURE_SYMBOL = "✘"
WARNING_SYMBOL = "⚠"
SKIPPED_SYMBOL = "↓"
INDENT = "  "


def spinner_frame(frame: int) -> str:
    return SPINNER_FRAMES[frame % len(SPINNER_FRAMES)]


def indent_block(text: str, prefix: str = INDENT) -> str:
    lines = text.rstrip("\n").splitlines()
    return "\n".join(f"{prefix}{line}" if line else line for line in lines)


class Renderer(ABC):
    """Presentation primitives the task engine calls into."""

    @abstractmethod
    def begin(self, title: str, *, static: bool) -> None:
        """A task has started running."""

    @abstractmethod
    def progress(self, title: str, frame: Optional[int], status: Optional[str]) -> None:
        """Redraw the running task (spinner tick, update or title change)."""

    @abstractmethod
    def end(self, result: TaskResult) -> None:
        """Replace the running line with the final one and flush post-write output."""

    def close(self) -> None:
        """Release any live display; called once per run."""


class NullRenderer(Renderer):
    def begin(self, title: str, *, static: bool) -> None:
        pass

    def progress(self, title: str, frame: Optional[int], status: Optional[str]) -> None:
        pass

    def end(self, result: TaskResult) -> None:
        pass


class RichRenderer(Renderer):
    """Render tasks with rich: a spinner line while running, a symbol when done."""

    _STYLES = {
        TaskOutcome.COMPLETE: ("green", SUCCESS_SYMBOL),
        TaskOutcome.ERROR: ("red", FAILURE_SYMBOL),
        TaskOutcome.NON_FATAL_ERROR: ("yellow", WARNING_SYMBOL),
        TaskOutcome.SKIPPED: ("bright_black", SKIPPED_SYMBOL),
    }

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._live: Optional[Live] = None

    # -- running ------------------------------------------------------------

    def _running(self, title: str, frame: Optional[int], status: Optional[str]) -> Group:
        glyph = STATIC_SYMBOL if frame is None else spinner_frame(frame)
        parts = [Text.assemble((glyph, "yellow"), " ", title)]
        if status:
            parts.append(Text(f"{INDENT}{status}", style="bright_black"))
        return Group(*parts)

    def begin(self, title: str, *, static: bool) -> None:
        self._stop_live()
        if static:
            # The operation streams its own output; a live region would fight it.
            self.console.print(Text.assemble((STATIC_SYMBOL, "yellow"), " ", title))
            return
        self._live = Live(
            self._running(title, 0, None),
            console=self.console,
            auto_refresh=False,
            transient=True,
        )
        self._live.start()

    def progress(self, title: str, frame: Optional[int], status: Optional[str]) -> None:
        if self._live is None:
            return
        self._live.update(self._running(title, frame, status), refresh=True)

    # -- finished -----------------------------------------------------------

    def end(self, result: TaskResult) -> None:
        self._stop_live()
        if result.outcome == TaskOutcome.DISABLED:
            return

        style, symbol = self._STYLES[result.outcome]
        line = Text.assemble((symbol, style), " ", result.title)
        if result.outcome == TaskOutcome.SKIPPED:
            if result.message:
                line.append(f" [skipped: {result.message}]", style="bright_black")
        elif result.outcome != TaskOutcome.COMPLETE and result.message:
            line.append(f": {result.message}", style=style)
        self.console.print(line)

        if result.outcome == TaskOutcome.COMPLETE and result.message:
            self.console.print(Text(indent_block(result.message)))
        if result.output:
            self.console.print(Text(indent_block(result.output)))

    def close(self) -> None:
        self._stop_live()

    def _stop_live(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
