"""Durable key/value storage backed by a JSON file.

Mirrors the browser ``localStorage`` model: string keys mapped to string
values, shared by every process that opens the same file. There is no
cross-process locking; concurrent writers may overwrite each other.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from modules.logger import setup_logger

logger = setup_logger(__name__)


class KeyValueStore(Protocol):
    """Minimal storage interface used by components that persist state."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class JsonFileStore:
    """
    ``KeyValueStore`` persisted as a single JSON object on disk.

    Reads always go to disk so another process's writes are visible. Writes go
    to a temporary file and are moved into place with ``os.replace``.

    Raises:
        OSError: On read or write failures other than a missing file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            logger.warning(f"Local storage file {self.path} is corrupt; treating as empty")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Local storage file {self.path} is not an object; treating as empty")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class MemoryStore:
    """``KeyValueStore`` that lives only as long as the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


__all__ = ["KeyValueStore", "JsonFileStore", "MemoryStore"]
