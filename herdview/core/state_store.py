"""
State Store - durable key/value storage that survives restarts.

The view engine keeps its last-known window layout here under the
``view.windows`` key so a restarted bot puts every camera back where it was.

Stored in ``~/.herdview/state.json`` by default. Example content:
{
  "view.windows": {
    "Barn": [
      {"source": "Treat", "x": 0, "y": 0, "width": 1280, "height": 720},
      {"source": "Does", "x": 1280, "y": 0, "width": 640, "height": 360}
    ]
  }
}

Failures never escape :meth:`StateStore.fetch` / :meth:`StateStore.store`:
they are logged and reported as ``None`` / ``False``. The in-memory mirror
stays authoritative for the running process.
"""

from __future__ import annotations

import asyncio
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from .logging_utils import get_module_logger
from .paths import STATE_FILE


class StateStoreError(Exception):
    """Raised internally when the backing file cannot be read or written."""


class StateStore(ABC):
    """Boundary contract for durable key/value storage."""

    @abstractmethod
    async def fetch(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key`` or None."""

    @abstractmethod
    async def store(self, key: str, value: Any) -> bool:
        """Persist ``value`` under ``key``. Returns True once written."""

    async def close(self) -> None:
        return None


class JsonStateStore(StateStore):
    """A JSON object on disk, loaded lazily and rewritten atomically."""

    def __init__(self, file_path: Path = STATE_FILE):
        self.logger = get_module_logger("StateStore")
        self._file_path = Path(file_path)
        self._cache: Dict[str, Any] = {}
        self._loaded = False
        self._lock = asyncio.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    async def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        if not await asyncio.to_thread(self._file_path.exists):
            self.logger.debug("No state file found at %s", self._file_path)
            return

        try:
            async with aiofiles.open(self._file_path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except json.JSONDecodeError as e:
            raise StateStoreError(f"Invalid JSON in {self._file_path}: {e}") from e
        except OSError as e:
            raise StateStoreError(f"Cannot read {self._file_path}: {e}") from e

        if not isinstance(data, dict):
            raise StateStoreError(f"State file {self._file_path} does not hold an object")

        self._cache = data
        self.logger.info("Loaded %d keys from %s", len(data), self._file_path)

    async def _save(self) -> None:
        tmp_path = self._file_path.with_name(f".{self._file_path.name}.tmp")
        try:
            await asyncio.to_thread(self._file_path.parent.mkdir, parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as tmp:
                await tmp.write(json.dumps(self._cache, indent=2, sort_keys=True))
                await tmp.flush()
            await asyncio.to_thread(os.replace, tmp_path, self._file_path)
        except (OSError, TypeError, ValueError) as e:
            await asyncio.to_thread(tmp_path.unlink, missing_ok=True)
            raise StateStoreError(f"Cannot write {self._file_path}: {e}") from e

    async def fetch(self, key: str) -> Optional[Any]:
        async with self._lock:
            try:
                await self._load()
            except StateStoreError as e:
                self.logger.error("Failed to load state: %s", e)
                return None
            return self._cache.get(key)

    async def store(self, key: str, value: Any) -> bool:
        async with self._lock:
            try:
                await self._load()
            except StateStoreError as e:
                # Keep going: the write below replaces the unreadable file
                self.logger.warning("Overwriting unreadable state file: %s", e)

            previous = self._cache.get(key, _MISSING)
            self._cache[key] = value
            try:
                await self._save()
            except StateStoreError as e:
                if previous is _MISSING:
                    self._cache.pop(key, None)
                else:
                    self._cache[key] = previous
                self.logger.error("Failed to store '%s': %s", key, e)
                return False

        self.logger.debug("Stored '%s' in %s", key, self._file_path)
        return True


_MISSING = object()


__all__ = ["JsonStateStore", "StateStore", "StateStoreError"]
