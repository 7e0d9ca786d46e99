from __future__ import annotations

import json

import pytest
from loguru import logger

from apx.cli import build_parser, main


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger.remove()


@pytest.fixture
def atom_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("ATOM_HOME", str(home / ".atom"))
    monkeypatch.delenv("APX_LOG_PATH", raising=False)
    return home / ".atom"


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert "apx" in capsys.readouterr().out


def test_command_required():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2


def test_parser_unlink_options():
    args = build_parser().parse_args(["unlink", "--all", "--hard"])
    assert args.all and args.hard and args.target is None


def test_link_then_unlink_silently(atom_home, tmp_path, capsys):
    source = tmp_path / "pkg"
    source.mkdir()
    (source / "package.json").write_text(json.dumps({"name": "pkg"}), encoding="utf-8")

    assert main(["--silent", "link", str(source)]) == 0
    assert (atom_home / "packages" / "pkg").is_symlink()
    assert main(["--silent", "unlink", "--name", "pkg"]) == 0
    assert not (atom_home / "packages" / "pkg").exists()
    assert capsys.readouterr().out == ""


def test_error_outside_tasks_exits_nonzero(atom_home, tmp_path, capsys):
    assert main(["--silent", "link", str(tmp_path / "missing")]) == 1
    assert "package.json" in capsys.readouterr().err


def test_failed_task_exits_nonzero(atom_home):
    assert main(["--silent", "uninstall", "ghost"]) == 1


def test_log_file_written(atom_home):
    assert main(["--silent", "--log-file", "unlink", "--all"]) == 0
    assert (atom_home / "log" / "apx.log").is_file()


class TestConfigCommand:
    def test_set_then_get(self, atom_home, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("APX_CONFIG_PATH", str(tmp_path / ".apxrc"))

        assert main(["config", "target", "beta"]) == 0
        assert main(["config", "color", "false"]) == 0
        capsys.readouterr()

        assert main(["config", "target"]) == 0
        assert capsys.readouterr().out == "beta\n"
        assert main(["config", "color"]) == 0
        assert capsys.readouterr().out == "false\n"
        assert json.loads((tmp_path / ".apxrc").read_text())["target"] == "beta"

    def test_unset_key(self, atom_home, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("APX_CONFIG_PATH", str(tmp_path / ".apxrc"))
        assert main(["config", "missing"]) == 1
        assert "missing is not set" in capsys.readouterr().err

    def test_invalid_target_rejected(self, atom_home, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("APX_CONFIG_PATH", str(tmp_path / ".apxrc"))
        assert main(["config", "target", "nightly"]) == 1
        assert "Invalid value for target" in capsys.readouterr().err
