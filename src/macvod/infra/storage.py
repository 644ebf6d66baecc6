"""Key-value storage backends for the endpoint registry.

Both classes satisfy :class:`~macvod.core.protocols.KeyValueStorage`
structurally.  OS and JSON errors are caught here and either degrade
(unreadable file → empty store) or are re-raised as
:class:`~macvod.exceptions.StorageError`.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from macvod.exceptions import StorageError

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Process-local store.  Values are deep-copied in and out."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def update(self, values: Mapping[str, Any]) -> None:
        staged = copy.deepcopy(dict(values))
        with self._lock:
            self._data = {**self._data, **staged}


class JsonFileStorage:
    """A JSON object on disk, rewritten atomically on every update.

    The whole file is replaced via a temporary sibling and
    :func:`os.replace`, so a concurrent reader sees either the previous
    or the new content, never a partial write.  A missing or unreadable
    file behaves as an empty store.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def update(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            data = self._read()
            data.update(values)
            self._write(data)

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read settings file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings file %s does not hold a JSON object", self.path)
            return {}
        return data

    def _write(self, data: Mapping[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(
                f"Could not write settings file {self.path}: {exc}",
                hint="Check the directory permissions or set MACVOD_CONFIG.",
            ) from exc
