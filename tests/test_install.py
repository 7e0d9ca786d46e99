from __future__ import annotations

import io
import json
import tarfile

import httpx
import pytest

from apx.commands import Install
from apx.commands import install as install_module
from apx.commands.install import extract_package, resolve_tarball, split_package_spec
from apx.constants import ApxError
from apx.tasks import TaskOutcome


def _tarball(name: str, version: str) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for path, text in (
            ("package/package.json", json.dumps({"name": name, "version": version})),
            ("package/lib/main.js", "module.exports = {}\n"),
        ):
            data = text.encode("utf-8")
            info = tarfile.TarInfo(path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


REGISTRY = {
    "name": "linter",
    "releases": {"latest": "2.0.0"},
    "versions": {
        "1.0.0": {"dist": {"tarball": "https://atom.test/linter-1.0.0.tgz"}},
        "2.0.0": {"dist": {"tarball": "https://atom.test/linter-2.0.0.tgz"}},
    },
}


@pytest.mark.parametrize(
    ("spec", "expected"),
    [
        ("linter", ("linter", None)),
        ("linter@1.0.0", ("linter", "1.0.0")),
        ("linter@", ("linter", None)),
        ("@scope", ("@scope", None)),
    ],
)
def test_split_package_spec(spec, expected):
    assert split_package_spec(spec) == expected


class TestResolveTarball:
    def test_latest(self):
        assert resolve_tarball(REGISTRY, None) == ("2.0.0", "https://atom.test/linter-2.0.0.tgz")

    def test_pinned(self):
        assert resolve_tarball(REGISTRY, "1.0.0")[0] == "1.0.0"

    def test_unknown_version(self):
        with pytest.raises(ApxError, match="Version 9.9.9 of linter not found"):
            resolve_tarball(REGISTRY, "9.9.9")

    def test_unpublished(self):
        with pytest.raises(ApxError, match="No published versions"):
            resolve_tarball({"name": "linter"}, None)


def test_extract_package_strips_top_level_directory(tmp_path):
    destination = tmp_path / "packages" / "linter"
    extract_package(_tarball("linter", "2.0.0"), destination)

    assert json.loads((destination / "package.json").read_text())["version"] == "2.0.0"
    assert (destination / "lib" / "main.js").is_file()


class TestInstallCommand:
    @pytest.fixture
    def registry(self, monkeypatch):
        requested: list[str] = []

        async def fake_get(url, **kwargs):
            requested.append(url)
            if url.endswith("/packages/linter"):
                return httpx.Response(200, json=REGISTRY)
            if url.endswith(".tgz"):
                return httpx.Response(200, content=_tarball("linter", "2.0.0"))
            return httpx.Response(404)

        monkeypatch.setattr(install_module, "get", fake_get)
        return requested

    @pytest.fixture
    def npm(self, monkeypatch):
        calls: list[tuple] = []

        async def fake_spawn(self, program, args, **kwargs):
            calls.append((program, tuple(args)))
            return 0, ""

        monkeypatch.setattr(Install, "spawn", fake_spawn)
        return calls

    def test_install_downloads_extracts_and_builds(self, atom_env, renderer, registry, npm):
        code = Install(atom_env, renderer).install("linter")

        assert code == 0
        assert (atom_env.packages_directory() / "linter" / "package.json").is_file()
        assert npm == [("npm", ("install", "--production"))]
        assert [r.outcome for r in renderer.results] == [TaskOutcome.COMPLETE] * 4
        assert renderer.results[1].message == "linter@2.0.0"

    def test_reinstall_of_same_version_is_skipped(self, atom_env, renderer, registry, npm):
        Install(atom_env, renderer).install("linter")
        renderer.results.clear()
        npm.clear()

        assert Install(atom_env, renderer).install("linter@2.0.0") == 0
        assert [r.outcome for r in renderer.results[-2:]] == [TaskOutcome.SKIPPED, TaskOutcome.SKIPPED]
        assert "already installed" in renderer.results[-1].message
        assert npm == []

    def test_force_reinstalls(self, atom_env, renderer, registry, npm):
        Install(atom_env, renderer).install("linter")
        npm.clear()

        assert Install(atom_env, renderer).install("linter", force=True) == 0
        assert len(npm) == 1

    def test_unknown_package_fails(self, atom_env, renderer, registry, npm):
        assert Install(atom_env, renderer).install("ghost") == 1
        assert renderer.results[-1].message == "Package ghost not found"
        assert npm == []

    def test_failed_build_is_fatal(self, atom_env, renderer, registry, monkeypatch):
        async def failing_spawn(self, program, args, *, task=None, **kwargs):
            task.post_write("gyp ERR!\n")
            return 1, "gyp ERR!\n"

        monkeypatch.setattr(Install, "spawn", failing_spawn)

        assert Install(atom_env, renderer).install("linter") == 1
        assert renderer.results[-1].outcome == TaskOutcome.ERROR
        assert renderer.results[-1].output == "gyp ERR!\n"

    def test_local_install_runs_npm_in_cwd(self, atom_env, renderer, npm, tmp_path, monkeypatch):
        project = tmp_path / "project"
        project.mkdir()
        (project / "package.json").write_text(json.dumps({"name": "mine"}), encoding="utf-8")
        monkeypatch.chdir(project)

        assert Install(atom_env, renderer).install() == 0
        assert npm == [("npm", ("install",))]
        assert renderer.visible[-1].title == "Installing dependencies for mine"
        assert renderer.results[-1].outcome == TaskOutcome.DISABLED

    def test_local_install_runs_install_script(self, atom_env, renderer, npm, tmp_path, monkeypatch):
        project = tmp_path / "project"
        project.mkdir()
        metadata = {"name": "mine", "scripts": {"install": "node build.js"}}
        (project / "package.json").write_text(json.dumps(metadata), encoding="utf-8")
        monkeypatch.chdir(project)

        assert Install(atom_env, renderer).install(".") == 0
        assert npm == [("npm", ("install",)), ("npm", ("run", "install"))]
        assert renderer.results[-1].outcome == TaskOutcome.COMPLETE
