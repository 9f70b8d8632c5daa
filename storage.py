"""Key-value storage backends for the cover cache.

Backends never raise. Every call returns a ``StoreResult``; a failed result
carries the error text so callers can log it and carry on.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreResult:
    ok: bool
    value: str | None = None
    error: str = ""


class KeyValueStore(Protocol):
    def read(self, key: str) -> StoreResult: ...

    def write(self, key: str, value: str) -> StoreResult: ...

    def delete(self, key: str) -> StoreResult: ...


class MemoryStore:
    """Process-local store. Nothing survives a restart."""

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def read(self, key: str) -> StoreResult:
        return StoreResult(ok=True, value=self._entries.get(key))

    def write(self, key: str, value: str) -> StoreResult:
        self._entries[key] = value
        return StoreResult(ok=True)

    def delete(self, key: str) -> StoreResult:
        self._entries.pop(key, None)
        return StoreResult(ok=True)

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileStore:
    """Durable store backed by one JSON object on disk.

    The file is loaded lazily on first access and rewritten atomically
    (temp file + ``os.replace``) after every mutation.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._entries: dict[str, str] | None = None

    def read(self, key: str) -> StoreResult:
        with self._lock:
            loaded = self._load()
            if not loaded.ok:
                return loaded
            return StoreResult(ok=True, value=self._entries.get(key))

    def write(self, key: str, value: str) -> StoreResult:
        with self._lock:
            loaded = self._load()
            if not loaded.ok:
                # A corrupt file is replaced rather than blocking every write.
                self._entries = {}
            self._entries[key] = value
            return self._save()

    def delete(self, key: str) -> StoreResult:
        with self._lock:
            loaded = self._load()
            if not loaded.ok:
                return loaded
            if self._entries.pop(key, None) is None:
                return StoreResult(ok=True)
            return self._save()

    def _load(self) -> StoreResult:
        if self._entries is not None:
            return StoreResult(ok=True)
        if not self.path.exists():
            self._entries = {}
            return StoreResult(ok=True)
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Cover store unreadable at %s: %s", self.path, exc)
            return StoreResult(ok=False, error=str(exc))

        entries = payload.get("entries") if isinstance(payload, dict) else None
        if not isinstance(entries, dict):
            LOGGER.warning("Cover store at %s has no entries mapping, starting empty", self.path)
            entries = {}
        self._entries = {str(k): v for k, v in entries.items() if isinstance(v, str)}
        return StoreResult(ok=True)

    def _save(self) -> StoreResult:
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        payload = {"version": 1, "entries": self._entries}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            LOGGER.warning("Cover store write failed at %s: %s", self.path, exc)
            return StoreResult(ok=False, error=str(exc))
        return StoreResult(ok=True)


def open_store(path: str | None = None) -> KeyValueStore:
    """Open the configured store. An empty path selects the in-memory store."""
    if path is None:
        path = os.getenv("COVER_CACHE_PATH", ".cover_cache.json")
    path = path.strip()
    if not path:
        return MemoryStore()
    return JsonFileStore(path)
