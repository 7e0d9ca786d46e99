from __future__ import annotations

import asyncio

from apx.tasks import NullRenderer, RichRenderer, TaskManager, TaskOutcome, TaskResult, TaskSpec
from apx.tasks.render import (
    FAILURE_SYMBOL,
    SKIPPED_SYMBOL,
    SPINNER_FRAMES,
    STATIC_SYMBOL,
    SUCCESS_SYMBOL,
    WARNING_SYMBOL,
    indent_block,
    spinner_frame,
)


def _output(console) -> str:
    return console.file.getvalue()


def test_spinner_frame_wraps():
    assert spinner_frame(0) == SPINNER_FRAMES[0]
    assert spinner_frame(len(SPINNER_FRAMES) + 2) == SPINNER_FRAMES[2]


def test_indent_block_keeps_blank_lines_bare():
    assert indent_block("a\n\nb\n") == "  a\n\n  b"


class TestRichRendererLines:
    def test_complete_line(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="Install", outcome=TaskOutcome.COMPLETE))
        assert _output(console) == f"{SUCCESS_SYMBOL} Install\n"

    def test_complete_message_printed_beneath(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="Link", outcome=TaskOutcome.COMPLETE, message="a -> b"))
        assert _output(console).splitlines() == [f"{SUCCESS_SYMBOL} Link", "  a -> b"]

    def test_error_line_carries_message(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="Build", outcome=TaskOutcome.ERROR, message="boom"))
        assert _output(console) == f"{FAILURE_SYMBOL} Build: boom\n"

    def test_non_fatal_line(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="Check", outcome=TaskOutcome.NON_FATAL_ERROR, message="meh"))
        assert _output(console) == f"{WARNING_SYMBOL} Check: meh\n"

    def test_skipped_line_with_reason(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="B", outcome=TaskOutcome.SKIPPED, message="reason"))
        assert _output(console) == f"{SKIPPED_SYMBOL} B [skipped: reason]\n"

    def test_skipped_line_without_reason(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="B", outcome=TaskOutcome.SKIPPED))
        assert _output(console) == f"{SKIPPED_SYMBOL} B\n"

    def test_disabled_prints_nothing(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="A", outcome=TaskOutcome.DISABLED))
        assert _output(console) == ""

    def test_post_write_output_indented(self, rich_renderer, console):
        rich_renderer.end(TaskResult(title="npm", outcome=TaskOutcome.COMPLETE, output="added 3\n"))
        assert _output(console).splitlines() == [f"{SUCCESS_SYMBOL} npm", "  added 3"]

    def test_static_begin_prints_marker(self, rich_renderer, console):
        rich_renderer.begin("Running npm", static=True)
        assert _output(console) == f"{STATIC_SYMBOL} Running npm\n"


class TestRichRendererRuns:
    def test_failed_run_output(self, rich_renderer, console):
        def boom(task, ctx):
            raise RuntimeError("boom")

        specs = [
            TaskSpec(title="A", operation=lambda task, ctx: None),
            TaskSpec(title="B", operation=lambda t, c: None, skip=lambda ctx: "reason"),
            TaskSpec(title="C", operation=boom),
            TaskSpec(title="D", operation=lambda task, ctx: None),
        ]

        result = TaskManager(specs, renderer=rich_renderer).run_sync({})

        assert not result.success
        assert _output(console).splitlines() == [
            f"{SUCCESS_SYMBOL} A",
            f"{SKIPPED_SYMBOL} B [skipped: reason]",
            f"{FAILURE_SYMBOL} C: boom",
        ]

    def test_disabled_spec_produces_no_line(self, rich_renderer, console):
        specs = [TaskSpec(title="A", operation=lambda task, ctx: None, enabled=lambda ctx: False)]
        TaskManager(specs, renderer=rich_renderer).run_sync({})
        assert _output(console) == ""

    def test_running_spinner_is_transient(self, rich_renderer, console):
        async def op(task, ctx):
            task.update("working")
            await asyncio.sleep(0.1)

        TaskManager([TaskSpec(title="Slow", operation=op)], renderer=rich_renderer).run_sync({})

        assert _output(console) == f"{SUCCESS_SYMBOL} Slow\n"


def test_null_renderer_accepts_everything():
    renderer = NullRenderer()
    renderer.begin("x", static=False)
    renderer.progress("x", 1, "s")
    renderer.end(TaskResult(title="x", outcome=TaskOutcome.ERROR, message="m"))
    renderer.close()
