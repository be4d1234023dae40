from __future__ import annotations

import asyncio
import json
import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from threading import RLock
from typing import Any

from .logging_config import get_logger
from .settings import Settings

logger = get_logger(__name__)

KeyPart = str | int
Key = tuple[KeyPart, ...]

_DELETE = object()


class StorageUnavailable(RuntimeError):
    """The backing store cannot be reached, read or written."""


@dataclass(frozen=True, slots=True)
class Entry:
    key: Key
    value: Any
    versionstamp: int | None

    @property
    def exists(self) -> bool:
        return self.versionstamp is not None


@dataclass(frozen=True, slots=True)
class Check:
    key: Key
    versionstamp: int | None


class AtomicOperation:
    """Checks and mutations applied all-or-nothing by :meth:`commit`.

    ``check(key, None)`` requires ``key`` to be absent; ``check(key, n)``
    requires its current versionstamp to equal ``n``. ``commit`` returns False
    (and writes nothing) when any check fails.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._checks: list[Check] = []
        self._mutations: list[tuple[Key, Any]] = []

    def check(self, key: Sequence[KeyPart], versionstamp: int | None) -> AtomicOperation:
        self._checks.append(Check(tuple(key), versionstamp))
        return self

    def set(self, key: Sequence[KeyPart], value: Any) -> AtomicOperation:
        self._mutations.append((tuple(key), value))
        return self

    def delete(self, key: Sequence[KeyPart]) -> AtomicOperation:
        self._mutations.append((tuple(key), _DELETE))
        return self

    async def commit(self) -> bool:
        return await self._store._commit(self._checks, self._mutations)


class KeyValueStore(ABC):
    """Storage capability handed to the reservation store: get, prefix list, atomic."""

    @abstractmethod
    async def get(self, key: Sequence[KeyPart]) -> Entry: ...

    @abstractmethod
    async def list(self, prefix: Sequence[KeyPart]) -> list[Entry]: ...

    def atomic(self) -> AtomicOperation:
        return AtomicOperation(self)

    @abstractmethod
    async def _commit(self, checks: list[Check], mutations: list[tuple[Key, Any]]) -> bool: ...


def _sort_key(key: Key) -> tuple[tuple[int, Any], ...]:
    return tuple((0, part) if isinstance(part, int) else (1, str(part)) for part in key)


class MemoryKV(KeyValueStore):
    """In-process store. Reads yield to the event loop after taking their snapshot."""

    def __init__(self) -> None:
        self._data: dict[Key, tuple[Any, int]] = {}
        self._version = 0
        self._lock = RLock()

    async def get(self, key: Sequence[KeyPart]) -> Entry:
        k = tuple(key)
        with self._lock:
            hit = self._data.get(k)
            entry = Entry(k, None, None) if hit is None else Entry(k, deepcopy(hit[0]), hit[1])
        # the snapshot is taken; other tasks may write before the caller resumes
        await asyncio.sleep(0)
        return entry

    async def list(self, prefix: Sequence[KeyPart]) -> list[Entry]:
        p = tuple(prefix)
        n = len(p)
        with self._lock:
            rows = [
                Entry(k, deepcopy(value), stamp)
                for k, (value, stamp) in self._data.items()
                if k[:n] == p
            ]
        rows.sort(key=lambda entry: _sort_key(entry.key))
        await asyncio.sleep(0)
        return rows

    async def _commit(self, checks: list[Check], mutations: list[tuple[Key, Any]]) -> bool:
        # No awaits below: the check and the apply cannot interleave with
        # another coroutine, and the lock covers threaded callers.
        with self._lock:
            for check in checks:
                current = self._data.get(check.key)
                stamp = current[1] if current is not None else None
                if stamp != check.versionstamp:
                    return False
            if not mutations:
                return True

            snapshot = dict(self._data)
            previous_version = self._version
            self._version += 1
            for key, value in mutations:
                if value is _DELETE:
                    self._data.pop(key, None)
                else:
                    self._data[key] = (deepcopy(value), self._version)
            try:
                self._persist()
            except StorageUnavailable:
                self._data = snapshot
                self._version = previous_version
                raise
            return True

    def _persist(self) -> None:
        return None


class JsonFileKV(MemoryKV):
    """MemoryKV mirrored to a JSON snapshot after every successful commit."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            data: dict[Key, tuple[Any, int]] = {}
            for row in raw.get("entries", []):
                data[tuple(row["key"])] = (row["value"], int(row["versionstamp"]))
            version = int(raw.get("version") or max((s for _, s in data.values()), default=0))
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise StorageUnavailable(f"Cannot read store snapshot: {self.path}") from exc
        self._data = data
        self._version = version

    def _persist(self) -> None:
        payload = {
            "version": self._version,
            "entries": [
                {"key": list(key), "value": value, "versionstamp": stamp}
                for key, (value, stamp) in self._data.items()
            ],
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("store_persist_failed", path=str(self.path), error=str(exc))
            raise StorageUnavailable(f"Cannot write store snapshot: {self.path}") from exc


def build_kv(config: Settings) -> KeyValueStore:
    if config.STORAGE_BACKEND == "file":
        return JsonFileKV(config.data_dir / "tablewise.json")
    return MemoryKV()
