"""Shared plumbing for apx commands: subprocesses, directories and display paths."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Any, Optional, Sequence

from loguru import logger

from .constants import ENV_LOG_PATH, LOG_DIR_NAME, ApxError
from .environment import Environment
from .tasks import Renderer, Task, TaskManager


class Command:
    """Base class for commands; each command builds and runs a ``TaskManager``."""

    def __init__(self, env: Environment, renderer: Optional[Renderer] = None):
        self.env = env
        self.renderer = renderer

    def task_manager(self) -> TaskManager:
        return TaskManager(renderer=self.renderer)

    async def spawn(
        self,
        program: str,
        args: Sequence[str],
        *,
        cwd: Optional[Path] = None,
        extra_env: Optional[dict[str, str]] = None,
        electron: bool = True,
        task: Optional[Task] = None,
        inherit: bool = False,
    ) -> tuple[int, str]:
        """Run a subprocess to completion.

        Args:
            program: Executable name, resolved on ``PATH``.
            args: Arguments to pass.
            cwd: Working directory.
            extra_env: Variables layered over the base environment.
            electron: Build native modules against Atom's Electron headers.
            task: When given, captured output is appended to its post-write buffer.
            inherit: Let the child write straight to the terminal instead of capturing.

        Returns:
            A tuple of ``(exit_code, captured_output)``.

        Raises:
            ApxError: If the program cannot be found.
        """
        env = self.env.electron_env() if electron else dict(self.env.environ)
        if extra_env:
            env.update(extra_env)

        logger.debug("Running {} {} in {}", program, " ".join(args), cwd or os.getcwd())
        try:
            proc = await asyncio.create_subprocess_exec(
                program,
                *args,
                cwd=str(cwd) if cwd else None,
                env=env,
                stdout=None if inherit else asyncio.subprocess.PIPE,
                stderr=None if inherit else asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as exc:
            raise ApxError(f"Could not find '{program}' command") from exc

        stdout, _ = await proc.communicate()
        output = stdout.decode("utf-8", errors="replace") if stdout else ""
        if task is not None and output:
            task.post_write(output)
        return proc.returncode, output

    async def run_script(self, name: str, scripts: Any, cwd: Path, task: Optional[Task] = None) -> bool:
        """Run ``npm run <name>`` if the package defines that script.

        Returns:
            True if the script existed and ran successfully, False if it is not defined.
        """
        if not isinstance(scripts, dict) or not isinstance(scripts.get(name), str):
            return False
        code, _ = await self.spawn("npm", ["run", name], cwd=cwd, task=task, inherit=task is None)
        if code:
            raise ApxError(f"Process exited with code {code}")
        return True

    def log_path(self) -> Path:
        override = self.env.environ.get(ENV_LOG_PATH)
        path = Path(override) if override else self.env.atom_directory() / LOG_DIR_NAME
        self.try_make_dir(path)
        return path

    @staticmethod
    def try_make_dir(directory: Path) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ApxError(f"Could not create required directory {directory}: {exc}") from exc

    async def create_dir(self, directory: Path) -> None:
        await asyncio.to_thread(self.try_make_dir, directory)

    def short_path(self, path: Path | str) -> str:
        text = str(path)
        try:
            home = str(self.env.home_directory())
        except ApxError:
            return text
        if home and text.startswith(home):
            return "~" + text[len(home):]
        return text
