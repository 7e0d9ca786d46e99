"""`apx publish`: register a package with atom.io and optionally release a new version.

Steps, in order:
1. read `package.json` and work out the GitHub owner/repo
2. validate the metadata
3. register the package (201 new, 409 already registered)
4. with a new version only: `npm version`, `git push --follow-tags`, wait for
   the tag to show up on GitHub, then publish the version to atom.io
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from ..auth import Token, get_token, unsafe_get_token
from ..command import Command
from ..constants import TAG_POLL_ATTEMPTS, TAG_POLL_INTERVAL_SECONDS, VERSION_TAG_PREFIX, ApxError
from ..package import get_github_owner_repo, get_metadata
from ..request import atomio_error_message, get, post
from ..tasks import Task, TaskContext, TaskSpec


REGISTER_CREATED = 201
REGISTER_EXISTING = 409
VERSION_CREATED = 201

REQUIRED_METADATA = ("name", "version", "repository")


def _releasing(ctx: TaskContext) -> bool:
    return bool(ctx.get("newversion"))


class Publish(Command):
    tag_poll_attempts = TAG_POLL_ATTEMPTS
    tag_poll_interval = TAG_POLL_INTERVAL_SECONDS

    def _read_metadata(self, task: Task, ctx: TaskContext) -> None:
        metadata = get_metadata(ctx["cwd"])
        ctx["metadata"] = metadata
        ctx["name"] = metadata.get("name")
        task.complete(ctx["name"])

    def _validate(self, task: Task, ctx: TaskContext) -> None:
        missing = [key for key in REQUIRED_METADATA if not ctx["metadata"].get(key)]
        if missing:
            task.error(f"package.json is missing {', '.join(missing)}")
            return
        ctx["owner"], ctx["repo"] = get_github_owner_repo(ctx["metadata"])
        task.complete(f"{ctx['owner']}/{ctx['repo']}")

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": unsafe_get_token(Token.ATOMIO, self.env.environ)}

    async def _register(self, task: Task, ctx: TaskContext) -> str:
        response = await post(
            self.env.atom_packages_url(),
            json={"repository": f"{ctx['owner']}/{ctx['repo']}"},
            headers=self._auth_headers(),
        )
        ctx["register_status"] = response.status_code
        if response.status_code == REGISTER_CREATED:
            return f"Registered new package {ctx['name']}"
        if response.status_code == REGISTER_EXISTING:
            return "Package already registered"
        raise ApxError(f"Error registering package: {atomio_error_message(response)}")

    async def _update_version(self, task: Task, ctx: TaskContext) -> str:
        code, _ = await self.spawn(
            "npm",
            ["version", ctx["newversion"], "-m", "Prepare v%s release",
             "--tag-version-prefix", VERSION_TAG_PREFIX],
            cwd=ctx["cwd"],
            electron=False,
            task=task,
        )
        if code:
            raise ApxError(f"Version change exited with code {code}")
        version = get_metadata(ctx["cwd"]).get("version")
        ctx["tag"] = f"{VERSION_TAG_PREFIX}{version}"
        return f"Updated version to {ctx['tag']}"

    async def _push(self, task: Task, ctx: TaskContext) -> None:
        code, _ = await self.spawn(
            "git", ["push", "--follow-tags"], cwd=ctx["cwd"], electron=False, task=task,
        )
        if code:
            raise ApxError(f"git push exited with code {code}")
        task.complete()

    async def _await_tag(self, task: Task, ctx: TaskContext) -> None:
        url = f"{self.env.github_repo_url(ctx['owner'], ctx['repo'])}/tags"
        headers = {"Accept": "application/vnd.github+json"}
        token = get_token(Token.GITHUB, self.env.environ)
        if token:
            headers["Authorization"] = f"token {token}"

        for attempt in range(1, self.tag_poll_attempts + 1):
            task.update(f"Checking GitHub ({attempt}/{self.tag_poll_attempts})")
            response = await get(url, headers=headers, params={"per_page": 100})
            if response.status_code == 200:
                names = {entry.get("name") for entry in response.json() if isinstance(entry, dict)}
                if ctx["tag"] in names:
                    task.complete(f"Detected tag {ctx['tag']} on GitHub {ctx['owner']}/{ctx['repo']}")
                    return
            if attempt < self.tag_poll_attempts:
                await asyncio.sleep(self.tag_poll_interval)

        task.error(f"Could not detect tag on GitHub {ctx['owner']}/{ctx['repo']}")

    async def _publish_version(self, task: Task, ctx: TaskContext) -> str:
        response = await post(
            f"{self.env.atom_packages_url()}/{ctx['name']}/versions",
            json={"tag": ctx["tag"], "rename": False},
            headers=self._auth_headers(),
        )
        if response.status_code != VERSION_CREATED:
            raise ApxError(f"Error publishing version: {atomio_error_message(response)}")
        return f"Successfully published version {ctx['tag']}"

    def publish(self, newversion: Optional[str] = None, cwd: Optional[Path] = None) -> int:
        tasks = self.task_manager()
        tasks.add_task(TaskSpec(title="Reading package metadata", operation=self._read_metadata))
        tasks.add_task(TaskSpec(title=lambda ctx: f"Validating {ctx['name']}", operation=self._validate))
        tasks.add_task(TaskSpec(title=lambda ctx: f"Registering {ctx['name']}", operation=self._register))
        tasks.add_task(TaskSpec(
            title=lambda ctx: f"Updating version ({ctx['newversion']})",
            operation=self._update_version,
            enabled=_releasing,
        ))
        tasks.add_task(TaskSpec(
            title=lambda ctx: f"Pushing {ctx['tag']}",
            operation=self._push,
            enabled=_releasing,
        ))
        tasks.add_task(TaskSpec(
            title=lambda ctx: f"Waiting for {ctx['tag']} on GitHub",
            operation=self._await_tag,
            enabled=_releasing,
        ))
        tasks.add_task(TaskSpec(
            title=lambda ctx: f"Publishing {ctx['name']} {ctx['tag']}",
            operation=self._publish_version,
            enabled=_releasing,
        ))
        ctx: TaskContext = {"cwd": cwd or Path.cwd(), "newversion": newversion}
        return 0 if tasks.run_sync(ctx) else 1
