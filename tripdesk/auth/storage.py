"""Credential storage helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol

from tripdesk.auth.constants import STORE_FILENAME
from tripdesk.utils.helpers import ensure_dir, get_data_path

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Persistent string store the auth layer keeps credentials in."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store; contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


def default_store_path() -> Path:
    auth_dir = ensure_dir(get_data_path() / "auth")
    return auth_dir / STORE_FILENAME


class JsonFileStore:
    """Store backed by a JSON object on disk, readable only by the owner."""

    def __init__(self, path: Path | str | None = None):
        self._path = Path(path) if path else default_store_path()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        try:
            with _FileLock(self._lock_path()):
                data = self._load()
                data[key] = value
                self._write(data)
        except OSError as exc:
            logger.warning("Could not write %s to %s: %s", key, self._path, exc)

    def remove(self, key: str) -> None:
        try:
            with _FileLock(self._lock_path()):
                data = self._load()
                if data.pop(key, None) is not None:
                    self._write(data)
        except OSError as exc:
            logger.warning("Could not remove %s from %s: %s", key, self._path, exc)

    def _lock_path(self) -> Path:
        return self._path.with_suffix(".lock")

    def _load(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable credential store %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, object]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, ensure_ascii=True, indent=2), encoding="utf-8")
        try:
            os.chmod(self._path, 0o600)
        except OSError:
            # Not supported on every filesystem.
            pass


class _FileLock:
    """Simple file lock to serialize writers across processes."""

    def __init__(self, path: Path):
        self._path = path
        self._fp = None

    def __enter__(self) -> "_FileLock":
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fp = open(self._path, "a+")
        try:
            import fcntl

            fcntl.flock(self._fp.fileno(), fcntl.LOCK_EX)
        except (ImportError, OSError):
            # Non-POSIX or failed lock: continue without locking.
            pass
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            import fcntl

            fcntl.flock(self._fp.fileno(), fcntl.LOCK_UN)
        except (ImportError, OSError):
            pass
        if self._fp:
            self._fp.close()
