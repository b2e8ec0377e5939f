"""Local durable key-value storage backed by JSON files."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class LocalStorage:
    """One JSON file per key under ``data_dir``.

    Reads are forgiving (a missing or corrupt file yields the default); writes
    are atomic and raise ``OSError`` so callers can apply their own policy.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Load the value stored under ``key``."""
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("local_storage_read_failed", key=key, error=str(e))
            return default

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing the file atomically."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(value, ensure_ascii=False, indent=2)

        tmp = NamedTemporaryFile("w", encoding="utf-8", dir=str(path.parent), delete=False)
        try:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp.close()
            os.replace(tmp.name, path)
        finally:
            tmp.close()
            if os.path.exists(tmp.name):
                os.unlink(tmp.name)

        logger.debug("local_storage_written", key=key, bytes=len(text))

    def remove(self, key: str) -> None:
        """Delete the value stored under ``key`` if present."""
        path = self._path(key)
        if path.exists():
            path.unlink()
            logger.debug("local_storage_removed", key=key)
