"""
File-backed key-value storage.

The whole key space is one JSON object on disk. It is read once when the
storage is created and rewritten on every set/delete through a temporary
file and os.replace, so a crash mid-write never leaves a truncated file.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

import structlog

from nutriscan.domain.shared.errors import StorageError

logger = structlog.get_logger(__name__)


class JsonFileStorage:
    """
    KeyValueStorage persisted to a single JSON file.

    Example:
        >>> storage = JsonFileStorage("~/.nutriscan/storage.json")
        >>> storage.set("nutriscan.history", "[]")
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path).expanduser()
        self._data: Dict[str, str] = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        updated = {**self._data, key: value}
        self._write(updated)
        self._data = updated

    def delete(self, key: str) -> None:
        if key not in self._data:
            return
        updated = {k: v for k, v in self._data.items() if k != key}
        self._write(updated)
        self._data = updated

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}

        try:
            content = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Storage file unreadable, starting empty", path=str(self._path), error=str(exc))
            return {}

        if not isinstance(content, dict):
            logger.warning("Storage file is not a JSON object, starting empty", path=str(self._path))
            return {}

        return {str(k): v for k, v in content.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            logger.error("Storage write failed", path=str(self._path), error=str(exc))
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write {self._path}: {exc}") from exc

        logger.debug("Storage written", path=str(self._path), keys=len(data))
