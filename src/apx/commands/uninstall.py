"""`apx uninstall`: remove an installed (or linked) package."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from ..command import Command
from ..constants import ApxError
from ..tasks import Task, TaskContext, TaskSpec


def remove_package_dir(path: Path) -> None:
    if path.is_symlink():
        path.unlink()
    else:
        shutil.rmtree(path)


class Uninstall(Command):

    def _locate(self, task: Task, ctx: TaskContext) -> None:
        search = [ctx["dev"]] + ([not ctx["dev"]] if ctx["hard"] else [])
        candidates = [self.env.packages_directory(dev) / ctx["name"] for dev in search]
        found = [path for path in candidates if path.is_symlink() or path.is_dir()]
        if not found:
            raise ApxError(f"Package {ctx['name']} is not installed")
        ctx["paths"] = found
        task.complete(", ".join(self.short_path(path) for path in found))

    async def _remove(self, task: Task, ctx: TaskContext) -> str:
        for path in ctx["paths"]:
            task.update(f"Removing {self.short_path(path)}")
            await asyncio.to_thread(remove_package_dir, path)
        return f"Removed {ctx['name']}"

    def uninstall(self, name: str, dev: bool = False, hard: bool = False) -> int:
        tasks = self.task_manager()
        tasks.add_task(TaskSpec(title=lambda ctx: f"Locating {ctx['name']}", operation=self._locate))
        tasks.add_task(TaskSpec(
            title=lambda ctx: f"Uninstalling {ctx['name']}",
            operation=self._remove,
        ))
        return 0 if tasks.run_sync({"name": name, "dev": dev, "hard": hard}) else 1
