"""Filesystem helpers."""

from __future__ import annotations

import os
from pathlib import Path

DATA_DIR_ENV = "TRIPDESK_HOME"


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if missing and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Return the tripdesk data directory (~/.tripdesk unless TRIPDESK_HOME is set)."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return ensure_dir(Path(override).expanduser())
    return ensure_dir(Path.home() / ".tripdesk")
