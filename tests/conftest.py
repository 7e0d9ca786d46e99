from __future__ import annotations

import io
from typing import Optional

import pytest
from rich.console import Console

from apx.environment import Environment
from apx.tasks import Renderer, RichRenderer, TaskOutcome, TaskResult


class RecordingRenderer(Renderer):
    """Renderer that remembers every call instead of drawing anything."""

    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.results: list[TaskResult] = []

    def begin(self, title: str, *, static: bool) -> None:
        self.events.append(("begin", title, static))

    def progress(self, title: str, frame: Optional[int], status: Optional[str]) -> None:
        self.events.append(("progress", title, frame, status))

    def end(self, result: TaskResult) -> None:
        self.events.append(("end", result.title, result.outcome))
        self.results.append(result)

    def close(self) -> None:
        self.events.append(("close",))

    @property
    def visible(self) -> list[TaskResult]:
        return [r for r in self.results if r.outcome != TaskOutcome.DISABLED]

    def progress_events(self) -> list[tuple]:
        return [e for e in self.events if e[0] == "progress"]


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def rich_renderer(console: Console) -> RichRenderer:
    return RichRenderer(console)


@pytest.fixture
def atom_env(tmp_path) -> Environment:
    home = tmp_path / "home"
    home.mkdir()
    environ = {
        "HOME": str(home),
        "USERPROFILE": str(home),
        "ATOM_HOME": str(home / ".atom"),
        "ATOM_VERSION": "1.60.0",
        "ATOM_ELECTRON_VERSION": "9.4.4",
        "APX_CONFIG_PATH": str(home / ".apxrc"),
        "PATH": "",
    }
    return Environment(environ)
