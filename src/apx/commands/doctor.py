"""`apx doctor`: check that the local toolchain can install Atom packages."""

from __future__ import annotations

import shutil
from typing import Optional

from ..command import Command
from ..tasks import Task, TaskContext, TaskSpec


BUILD_TOOLS: dict[str, tuple[str, ...]] = {
    "python": ("python3", "python"),
    "make": ("make",),
    "C++ compiler": ("g++", "clang++", "c++"),
}


class Doctor(Command):

    def _which(self, program: str) -> Optional[str]:
        return shutil.which(program, path=self.env.environ.get("PATH"))

    def _check_directories(self, task: Task, ctx: TaskContext) -> None:
        missing = [
            self.short_path(directory)
            for directory in (
                self.env.atom_directory(),
                self.env.packages_directory(),
                self.env.node_directory(),
            )
            if not directory.is_dir()
        ]
        if missing:
            task.non_fatal_error(f"Missing {', '.join(missing)} (run `apx install` to create them)")
            return
        task.complete()

    def _check_build_tools(self, task: Task, ctx: TaskContext) -> None:
        found: dict[str, str] = {}
        missing: list[str] = []
        for label, candidates in BUILD_TOOLS.items():
            path = next((p for p in map(self._which, candidates) if p), None)
            if path is None:
                missing.append(label)
            else:
                found[label] = path
        ctx["build_tools"] = found
        for label, path in found.items():
            task.post_write(f"{label}: {path}\n")
        if missing:
            task.non_fatal_error(f"Native builds need {', '.join(missing)}")
            return
        task.complete()

    async def _npm_doctor(self, task: Task, ctx: TaskContext) -> None:
        code, _ = await self.spawn("npm", ["doctor"], electron=False, inherit=True)
        ctx["npm_doctor_exit_code"] = code
        if code:
            task.non_fatal_error(f"npm doctor exited with code {code}")
            return
        task.complete()

    def doctor(self) -> int:
        tasks = self.task_manager()
        tasks.add_task(TaskSpec(title="Checking Atom directories", operation=self._check_directories))
        tasks.add_task(TaskSpec(title="Checking native build tools", operation=self._check_build_tools))
        tasks.add_task(TaskSpec(
            title="Running npm doctor",
            operation=self._npm_doctor,
            skip=lambda ctx: False if self._which("npm") else "npm not found on PATH",
            static_wait=True,
        ))
        return 0 if tasks.run_sync({}) else 1
