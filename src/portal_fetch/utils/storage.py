"""Key/value persistence backends for session state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String-to-string mapping whose multi-key writes land as one unit."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def update(self, items: dict[str, str]) -> None:
        ...

    @abstractmethod
    def delete(self, *keys: str) -> None:
        ...

    def has(self, key: str) -> bool:
        return self.get(key) is not None


class MemoryStore(KeyValueStore):
    """Process-local store. Used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def update(self, items: dict[str, str]) -> None:
        self._data.update(items)

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileStore(KeyValueStore):
    """Durable store backed by a single JSON object on disk.

    Every write replaces the whole file through a temporary file and an
    atomic rename, so a reader never sees half of an update.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self._path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def update(self, items: dict[str, str]) -> None:
        data = self._read()
        data.update(items)
        self._write(data)

    def delete(self, *keys: str) -> None:
        data = self._read()
        if not any(key in data for key in keys):
            return
        for key in keys:
            data.pop(key, None)
        self._write(data)
