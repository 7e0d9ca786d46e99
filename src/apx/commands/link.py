"""`apx link` / `apx unlink`: manage symlinks in the Atom packages directories."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Optional

from ..command import Command
from ..constants import ApxError
from ..package import get_metadata
from ..tasks import Task, TaskContext, TaskSpec


def _symlinks_in(search_dir: Path) -> list[Path]:
    if not search_dir.is_dir():
        return []
    return sorted(entry for entry in search_dir.iterdir() if entry.is_symlink())


def unlink_all(search_dir: Path) -> list[Path]:
    removed = []
    for link in _symlinks_in(search_dir):
        link.unlink()
        removed.append(link)
    return removed


def unlink_by_name(search_dir: Path, name: str) -> Optional[Path]:
    link = search_dir / name
    if not link.is_symlink():
        return None
    link.unlink()
    return link


def unlink_by_target(search_dir: Path, target: Path) -> list[Path]:
    removed = []
    for link in _symlinks_in(search_dir):
        if Path(os.readlink(link)) != target:
            continue
        link.unlink()
        removed.append(link)
    return removed


class Link(Command):

    def _search_dirs(self, ctx: TaskContext) -> list[Path]:
        dirs = [self.env.packages_directory(ctx["dev"])]
        if ctx.get("hard"):
            dirs.append(self.env.packages_directory(not ctx["dev"]))
        return dirs

    def _removed_summary(self, prefix: str, removed: list[Path]) -> str:
        if len(removed) == 1:
            return f"{prefix} {self.short_path(removed[0])}"
        return f"{prefix} {len(removed)} symlinks"

    # -- link -----------------------------------------------------------------

    async def _link(self, task: Task, ctx: TaskContext) -> None:
        source: Path = ctx["source"]
        if not source.exists():
            raise ApxError(f"Package not found at {source}")

        target = self.env.packages_directory(ctx["dev"]) / ctx["name"]
        if target.is_symlink():
            target.unlink()
        elif target.exists():
            raise ApxError(f"Package {self.short_path(target)} already exists and is not a symlink")

        await self.create_dir(target.parent)
        await asyncio.to_thread(os.symlink, source, target, True)
        ctx["link"] = target
        task.complete(f"{self.short_path(target)} -> {self.short_path(source)}")

    def link(self, path: str = ".", name: Optional[str] = None, dev: bool = False) -> int:
        source = Path(path).expanduser().resolve()
        link_name = name or get_metadata(source).get("name")
        if not link_name:
            raise ApxError("Could not detect package name")

        tasks = self.task_manager()
        tasks.add_task(TaskSpec(
            title=lambda ctx: (
                f"Linking {ctx['name']} to {self.short_path(self.env.packages_directory(ctx['dev']))}"
            ),
            operation=self._link,
        ))
        result = tasks.run_sync({"name": link_name, "source": source, "dev": dev})
        return 0 if result else 1

    # -- unlink ---------------------------------------------------------------

    async def _unlink_all(self, task: Task, ctx: TaskContext) -> None:
        removed: list[Path] = []
        for search_dir in self._search_dirs(ctx):
            removed.extend(await asyncio.to_thread(unlink_all, search_dir))
        task.complete(self._removed_summary("Removed", removed))

    async def _unlink_name(self, task: Task, ctx: TaskContext) -> None:
        removed = []
        for search_dir in self._search_dirs(ctx):
            link = await asyncio.to_thread(unlink_by_name, search_dir, ctx["name"])
            if link is not None:
                removed.append(link)
        if not removed:
            task.non_fatal_error(f"No symlink named {ctx['name']}")
            return
        task.complete(self._removed_summary("Removed", removed))

    async def _unlink_target(self, task: Task, ctx: TaskContext) -> None:
        removed: list[Path] = []
        for search_dir in self._search_dirs(ctx):
            removed.extend(await asyncio.to_thread(unlink_by_target, search_dir, ctx["target"]))
        if not removed:
            task.non_fatal_error("No symlinks detected")
            return
        task.complete(self._removed_summary("Unlinked", removed))

    def _unlink_title(self, ctx: TaskContext) -> str:
        packages = self.short_path(self.env.packages_directory(ctx["dev"]))
        if ctx.get("all"):
            return "Unlinking all symlinks" if ctx["hard"] else f"Unlinking all symlinks in {packages}"
        if ctx.get("name"):
            title = f"Unlinking {ctx['name']} from {packages}"
            if ctx["hard"]:
                title += f" and {self.short_path(self.env.packages_directory(not ctx['dev']))}"
            return title
        target = self.short_path(ctx["target"])
        if ctx["hard"]:
            return f"Unlinking all references to {target}"
        return f"Unlinking references to {target} from {packages}"

    def unlink(self, name: Optional[str] = None, all_links: bool = False, dev: bool = False,
               hard: bool = False, target: Optional[str] = None) -> int:
        ctx: TaskContext = {"dev": dev, "all": all_links, "hard": hard}
        if all_links:
            operation = self._unlink_all
        elif name:
            ctx["name"] = name
            operation = self._unlink_name
        else:
            ctx["target"] = Path(target or os.getcwd()).expanduser().resolve()
            operation = self._unlink_target

        tasks = self.task_manager()
        tasks.add_task(title=self._unlink_title, operation=operation)
        return 0 if tasks.run_sync(ctx) else 1
