"""Locating ``chatcmd.toml``.

The file is searched for in the starting directory and then in each parent,
the way git finds ``.git``. ``CHATCMD_CONFIG`` names a file directly and
turns the search off.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "chatcmd.toml"
CONFIG_ENV_VAR = "CHATCMD_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Path of the config file that applies to *start* (default: cwd), or None."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
