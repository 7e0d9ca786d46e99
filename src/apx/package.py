"""Read `package.json` metadata and derive GitHub coordinates from it."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .constants import PACKAGE_METADATA_FILE, ApxError


_GITHUB_REPO_RE = re.compile(
    r"^(?:git\+)?https://github\.com/([A-Za-z0-9\-]+?)/([A-Za-z0-9\-._]+?)(?:/|\.git)?$"
)


def get_metadata(directory: Path) -> dict[str, Any]:
    """Load and parse the package's `package.json`.

    Args:
        directory: Package root directory.

    Returns:
        The parsed metadata mapping.

    Raises:
        ApxError: If the file is missing or is not a JSON object.
    """
    path = Path(directory) / PACKAGE_METADATA_FILE
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ApxError(f"No {PACKAGE_METADATA_FILE} found in {directory}") from exc
    except (OSError, ValueError) as exc:
        raise ApxError(f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ApxError(f"Expected an object in {path}")
    return data


def get_github_owner_repo(metadata: dict[str, Any]) -> tuple[str, str]:
    """Extract ``(owner, repo)`` from the metadata's `repository` field.

    Accepts either a URL string or an object with a `url` key.
    """
    repo_url = metadata.get("repository")
    if isinstance(repo_url, dict):
        repo_url = repo_url.get("url")

    if not isinstance(repo_url, str):
        raise ApxError("Expected repository URL")

    match = _GITHUB_REPO_RE.match(repo_url.strip())
    if not match:
        raise ApxError("Could not retrieve GitHub owner and repo")
    return match.group(1), match.group(2)
