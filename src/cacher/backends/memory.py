"""In-memory backends for development and tests."""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping, Sequence
from typing import Any


class KeyTooLongError(ValueError):
    """Key exceeds the backend's maximum key length."""

    pass


class MemoryBackend:
    """Dict-backed cache backend.

    Records the last key and write options it saw, and optionally rejects
    keys longer than ``max_key_length`` the way memcached-style stores do.
    """

    def __init__(self, max_key_length: int | None = None) -> None:
        self.store: dict[str, Any] = {}
        self.max_key_length = max_key_length
        self.last_accessed_key: str | None = None
        self.last_options: dict[str, Any] | None = None
        self._lock = threading.Lock()

    def _check_key(self, key: str) -> None:
        self.last_accessed_key = key
        if self.max_key_length is not None and len(key) > self.max_key_length:
            raise KeyTooLongError(f"key too long ({len(key)} > {self.max_key_length}): {key}")

    def get(self, key: str) -> Any:
        self._check_key(key)
        return self.store.get(key)

    def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> None:
        self._check_key(key)
        with self._lock:
            self.store[key] = value
            self.last_options = dict(options or {})

    def get_multi(self, keys: Sequence[str]) -> dict[str, Any]:
        for key in keys:
            self._check_key(key)
        return {key: self.store[key] for key in keys if key in self.store}

    def delete(self, key: str) -> bool:
        with self._lock:
            return self.store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self.store.clear()

    def keys(self) -> list[str]:
        return list(self.store)

    def __contains__(self, key: object) -> bool:
        return key in self.store

    def __iter__(self) -> Iterator[str]:
        return iter(list(self.store))

    def __len__(self) -> int:
        return len(self.store)


class AsyncMemoryBackend:
    """Async facade over a MemoryBackend."""

    def __init__(self, max_key_length: int | None = None) -> None:
        self.sync = MemoryBackend(max_key_length=max_key_length)

    @property
    def store(self) -> dict[str, Any]:
        return self.sync.store

    @property
    def last_accessed_key(self) -> str | None:
        return self.sync.last_accessed_key

    async def get(self, key: str) -> Any:
        return self.sync.get(key)

    async def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> None:
        self.sync.set(key, value, options)

    async def get_multi(self, keys: Sequence[str]) -> dict[str, Any]:
        return self.sync.get_multi(keys)
