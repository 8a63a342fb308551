# src/grand_prix/storage/kv_store.py

from __future__ import annotations

import contextlib
import logging
import os
import re
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileKeyValueStore:
    """
    File-backed key-value store: one file per key under `root`.

    Writes go to a temp file first and are moved into place with os.replace,
    so a crash mid-write never leaves a truncated value behind. There is no
    locking between processes: the last writer wins.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("KeyValueStore ready root=%s", self._root)

    def _path(self, key: str) -> Path:
        return self._root / f"{_SAFE_KEY.sub('_', key)}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text("utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(Exception):
            # Passwords live in the blob; keep the file private on disk.
            os.chmod(path, 0o600)
        logger.debug("KeyValueStore set key=%s bytes=%d", key, len(value))

    def remove(self, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path(key).unlink()


class MemoryKeyValueStore:
    """In-process store. Sessions sharing one instance behave like tabs of one browser."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
