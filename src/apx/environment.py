"""Discover Atom paths, endpoints and versions, and load the user's `.apxrc`.

Everything is resolved lazily from environment variables and cached on the
``Environment`` instance, so commands that never need (say) the Electron
version never touch the Atom installation.
"""

from __future__ import annotations

import json
import os
import platform
import re
import subprocess
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from .constants import (
    CONFIG_FILE_NAME,
    DARWIN_BETA_BUNDLE_QUERY,
    DARWIN_BETA_RESOURCE_FALLBACK,
    DARWIN_BUNDLE_QUERY,
    DARWIN_RESOURCE_FALLBACK,
    DEFAULT_ATOM_API_URL,
    DEFAULT_ATOM_DIR_NAME,
    DEFAULT_ELECTRON_URL,
    DEFAULT_GITHUB_API_URL,
    ENV_API_URL,
    ENV_ARCH,
    ENV_ATOM_HOME,
    ENV_ATOM_VERSION,
    ENV_CONFIG_PATH,
    ENV_ELECTRON_URL,
    ENV_ELECTRON_VERSION,
    ENV_GITHUB_URL,
    ENV_HOME,
    ENV_PACKAGES_URL,
    ENV_RESOURCE_PATH,
    ENV_USERPROFILE,
    LINUX_BETA_RESOURCE_PATHS,
    LINUX_RESOURCE_PATHS,
    PACKAGE_METADATA_FILE,
    ApxError,
)


_VERSION_RE = re.compile(r"^v?(\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.\-+]*)?)$")

_NODE_ARCH = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
}


class Target(str, Enum):
    STABLE = "stable"
    BETA = "beta"


class ApxConfig(BaseModel):
    """Contents of the user config file; unknown keys are kept as defaults."""

    model_config = ConfigDict(extra="allow")

    target: Target = Target.STABLE


def parse_version(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    match = _VERSION_RE.match(value.strip())
    return match.group(1) if match else None


class Environment:
    """Lazily-resolved locations and settings for one apx invocation."""

    def __init__(self, environ: Optional[dict[str, str]] = None):
        self.environ = dict(os.environ if environ is None else environ)
        self.platform = sys.platform
        self._home: Optional[Path] = None
        self._atom_dir: Optional[Path] = None
        self._resource_dir: Optional[Path] = None
        self._atom_version: Optional[str] = None
        self._electron_version: Optional[str] = None
        self._config: Optional[ApxConfig] = None

    def is_windows(self) -> bool:
        return self.platform == "win32"

    # -- directories ----------------------------------------------------------

    def home_directory(self) -> Path:
        if self._home is None:
            value = self.environ.get(ENV_USERPROFILE if self.is_windows() else ENV_HOME)
            if not value:
                raise ApxError("Could not locate home directory")
            self._home = Path(value)
        return self._home

    def atom_directory(self) -> Path:
        if self._atom_dir is None:
            value = self.environ.get(ENV_ATOM_HOME)
            self._atom_dir = Path(value) if value else self.home_directory() / DEFAULT_ATOM_DIR_NAME
        return self._atom_dir

    def packages_directory(self, dev: bool = False) -> Path:
        if dev:
            return self.atom_directory() / "dev" / "packages"
        return self.atom_directory() / "packages"

    def node_directory(self) -> Path:
        return self.atom_directory() / ".node-gyp"

    def resource_directory(self) -> Path:
        if self._resource_dir is None:
            self._resource_dir = self._calculate_resource_directory()
        return self._resource_dir

    def _calculate_resource_directory(self) -> Path:
        override = self.environ.get(ENV_RESOURCE_PATH)
        if override:
            return Path(override)

        beta = self.target() == Target.BETA
        if self.platform == "darwin":
            location = Path(DARWIN_BETA_RESOURCE_FALLBACK if beta else DARWIN_RESOURCE_FALLBACK)
            try:
                found = subprocess.run(
                    ["mdfind", DARWIN_BETA_BUNDLE_QUERY if beta else DARWIN_BUNDLE_QUERY],
                    capture_output=True,
                    text=True,
                    timeout=1,
                    check=False,
                ).stdout.splitlines()
            except (OSError, subprocess.TimeoutExpired) as exc:
                logger.debug("mdfind lookup failed: {}", exc)
                found = []
            if found and found[0].strip():
                location = Path(found[0].strip()) / "Contents" / "Resources" / "app.asar"
        elif self.platform.startswith("linux"):
            candidates = [Path(p) for p in (LINUX_BETA_RESOURCE_PATHS if beta else LINUX_RESOURCE_PATHS)]
            location = next((p for p in candidates if p.exists()), candidates[-1])
        else:
            raise ApxError(f"Platform {self.platform} not supported")

        if not location.exists():
            raise ApxError(f"Could not locate {'Atom Beta' if beta else 'Atom'} resources path")
        return location

    # -- endpoints ------------------------------------------------------------

    def atom_api_url(self) -> str:
        return self.environ.get(ENV_API_URL) or DEFAULT_ATOM_API_URL

    def atom_packages_url(self) -> str:
        return self.environ.get(ENV_PACKAGES_URL) or f"{self.atom_api_url()}/packages"

    def electron_url(self) -> str:
        return self.environ.get(ENV_ELECTRON_URL) or DEFAULT_ELECTRON_URL

    def github_api_url(self) -> str:
        return self.environ.get(ENV_GITHUB_URL) or DEFAULT_GITHUB_API_URL

    def github_repo_url(self, owner: str, repo: str) -> str:
        return f"{self.github_api_url()}/repos/{owner}/{repo}"

    # -- versions -------------------------------------------------------------

    def _calculate_versions(self) -> None:
        atom_version = parse_version(self.environ.get(ENV_ATOM_VERSION))
        electron_version = parse_version(self.environ.get(ENV_ELECTRON_VERSION))

        if atom_version is None or electron_version is None:
            metadata_path = self.resource_directory() / PACKAGE_METADATA_FILE
            try:
                metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raise ApxError(f"Could not read Atom metadata at {metadata_path}: {exc}") from exc
            atom_version = atom_version or parse_version(metadata.get("version"))
            electron_version = electron_version or parse_version(metadata.get("electronVersion"))

        if atom_version is None:
            raise ApxError("Could not determine Atom version")
        if electron_version is None:
            raise ApxError("Could not determine Electron version")

        self._atom_version = atom_version
        self._electron_version = electron_version

    def atom_version(self) -> str:
        if self._atom_version is None:
            self._calculate_versions()
        return self._atom_version

    def electron_version(self) -> str:
        if self._electron_version is None:
            self._calculate_versions()
        return self._electron_version

    def electron_arch(self) -> str:
        arch = self.environ.get(ENV_ARCH)
        if arch:
            return arch
        machine = platform.machine().lower()
        return _NODE_ARCH.get(machine, machine)

    def electron_env(self) -> dict[str, str]:
        """Environment for npm so native modules are built against Atom's Electron."""
        arch = self.electron_arch()
        return {
            **self.environ,
            "npm_config_runtime": "electron",
            "npm_config_target": self.electron_version(),
            "npm_config_disturl": self.electron_url(),
            "npm_config_arch": arch,
            "npm_config_target_arch": arch,
        }

    # -- user config ----------------------------------------------------------

    def config_path(self) -> Path:
        override = self.environ.get(ENV_CONFIG_PATH)
        if override:
            return Path(override)
        return self.home_directory() / CONFIG_FILE_NAME

    def config(self) -> ApxConfig:
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> ApxConfig:
        path = self.config_path()
        if not path.exists():
            return ApxConfig()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("config root must be an object")
            return ApxConfig.model_validate(data)
        except (OSError, ValueError, ValidationError) as exc:
            logger.debug("Ignoring invalid config at {}: {}", path, exc)
            return ApxConfig()

    def target(self) -> Target:
        return self.config().target

    def get_default(self, key: str, default: Any = None) -> Any:
        return self.config().model_dump(mode="json").get(key, default)

    def set_default(self, key: str, value: Any) -> None:
        data = self.config().model_dump(mode="json")
        data[key] = value
        try:
            self._config = ApxConfig.model_validate(data)
        except ValidationError as exc:
            raise ApxError(f"Invalid value for {key}: {value!r}") from exc
        self._resource_dir = None
        path = self.config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self._config.model_dump(mode="json"), indent=2) + "\n", encoding="utf-8")
