"""`apx install`: install a registry package, or the dependencies of a local one."""

from __future__ import annotations

import asyncio
import io
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Any, Optional

from ..command import Command
from ..constants import ApxError
from ..package import get_metadata
from ..request import atomio_error_message, get
from ..tasks import Task, TaskContext, TaskSpec


def split_package_spec(spec: str) -> tuple[str, Optional[str]]:
    """Split ``name@version`` into its parts; the version is optional."""
    name, sep, version = spec.rpartition("@")
    if not sep or not name:
        return spec, None
    return name, version or None


def resolve_tarball(metadata: dict[str, Any], version: Optional[str]) -> tuple[str, str]:
    """Pick the version to install and its tarball URL from registry metadata."""
    if version is None:
        version = (metadata.get("releases") or {}).get("latest")
    if not version:
        raise ApxError(f"No published versions of {metadata.get('name', 'package')}")
    entry = (metadata.get("versions") or {}).get(version)
    if not isinstance(entry, dict):
        raise ApxError(f"Version {version} of {metadata.get('name', 'package')} not found")
    tarball = (entry.get("dist") or {}).get("tarball")
    if not tarball:
        raise ApxError(f"Version {version} has no tarball")
    return version, tarball


def extract_package(archive: bytes, destination: Path) -> None:
    """Unpack a package tarball so its single top-level directory becomes ``destination``."""
    with tempfile.TemporaryDirectory(prefix="apx-") as scratch:
        scratch_dir = Path(scratch)
        with tarfile.open(fileobj=io.BytesIO(archive), mode="r:*") as tar:
            if hasattr(tarfile, "data_filter"):
                tar.extractall(scratch_dir, filter="data")
            else:
                tar.extractall(scratch_dir)
        entries = list(scratch_dir.iterdir())
        root = entries[0] if len(entries) == 1 and entries[0].is_dir() else scratch_dir
        if destination.exists():
            shutil.rmtree(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(root, destination, symlinks=True)


class Install(Command):

    async def _create_directories(self, task: Task, ctx: TaskContext) -> None:
        for directory in (
            self.env.atom_directory(),
            self.env.packages_directory(ctx["dev"]),
            self.env.node_directory(),
        ):
            await self.create_dir(directory)
        task.complete()

    # -- local package ----------------------------------------------------------

    def _read_local(self, task: Task, ctx: TaskContext) -> None:
        metadata = get_metadata(ctx["cwd"])
        ctx["metadata"] = metadata
        ctx["name"] = metadata.get("name") or ctx["cwd"].name

    async def _npm_install_local(self, task: Task, ctx: TaskContext) -> None:
        code, _ = await self.spawn("npm", ["install"], cwd=ctx["cwd"], inherit=True)
        if code:
            raise ApxError(f"npm install exited with code {code}")
        task.complete()

    async def _install_script(self, task: Task, ctx: TaskContext) -> None:
        if not await self.run_script("install", ctx["metadata"].get("scripts"), ctx["cwd"]):
            task.disable()
            return
        task.complete()

    # -- registry package -------------------------------------------------------

    async def _resolve(self, task: Task, ctx: TaskContext) -> None:
        url = f"{self.env.atom_packages_url()}/{ctx['name']}"
        response = await get(url)
        if response.status_code == 404:
            raise ApxError(f"Package {ctx['name']} not found")
        if response.status_code != 200:
            raise ApxError(f"Could not fetch {ctx['name']}: {atomio_error_message(response)}")
        version, tarball = resolve_tarball(response.json(), ctx.get("version"))
        ctx["version"] = version
        ctx["tarball"] = tarball
        ctx["install_dir"] = self.env.packages_directory(ctx["dev"]) / ctx["name"]
        ctx["installed"] = self._already_installed(ctx)
        task.complete(f"{ctx['name']}@{version}")

    def _already_installed(self, ctx: TaskContext) -> bool | str:
        if ctx["force"]:
            return False
        install_dir: Path = ctx["install_dir"]
        if not install_dir.exists():
            return False
        try:
            installed = get_metadata(install_dir).get("version")
        except ApxError:
            return False
        if installed == ctx["version"]:
            return f"{ctx['name']}@{installed} already installed"
        return False

    async def _download(self, task: Task, ctx: TaskContext) -> str:
        task.update(ctx["tarball"])
        response = await get(ctx["tarball"])
        if response.status_code != 200:
            raise ApxError(f"Download failed with status {response.status_code}")
        task.update("Extracting")
        await asyncio.to_thread(extract_package, response.content, ctx["install_dir"])
        return self.short_path(ctx["install_dir"])

    async def _build(self, task: Task, ctx: TaskContext) -> None:
        code, _ = await self.spawn("npm", ["install", "--production"], cwd=ctx["install_dir"], task=task)
        if code:
            task.error(f"npm install exited with code {code}")
            return
        task.complete()

    # -- entry ------------------------------------------------------------------

    def install(self, package: Optional[str] = None, dev: bool = False, force: bool = False) -> int:
        tasks = self.task_manager()
        tasks.add_task(TaskSpec(title="Creating Atom directories", operation=self._create_directories))

        ctx: TaskContext = {"dev": dev, "force": force}
        if not package or package == ".":
            ctx["cwd"] = Path.cwd()
            tasks.add_task(TaskSpec(title="Reading package metadata", operation=self._read_local))
            tasks.add_task(TaskSpec(
                title=lambda c: f"Installing dependencies for {c['name']}",
                operation=self._npm_install_local,
                static_wait=True,
            ))
            tasks.add_task(TaskSpec(
                title="Running install script",
                operation=self._install_script,
                static_wait=True,
            ))
        else:
            ctx["name"], ctx["version"] = split_package_spec(package)
            tasks.add_task(TaskSpec(title=lambda c: f"Resolving {c['name']}", operation=self._resolve))
            tasks.add_task(TaskSpec(
                title=lambda c: f"Downloading {c['name']}@{c['version']}",
                operation=self._download,
                skip=lambda c: c["installed"],
            ))
            tasks.add_task(TaskSpec(
                title=lambda c: f"Building {c['name']}",
                operation=self._build,
                skip=lambda c: c["installed"],
            ))
        return 0 if tasks.run_sync(ctx) else 1
