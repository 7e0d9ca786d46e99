"""Command implementations; each builds a task list and runs it."""

from __future__ import annotations

from .doctor import Doctor
from .install import Install
from .link import Link
from .publish import Publish
from .uninstall import Uninstall

__all__ = ["Doctor", "Install", "Link", "Publish", "Uninstall"]
