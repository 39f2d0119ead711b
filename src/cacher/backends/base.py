"""Backend capability required by the cache engines.

A backend exposes exactly one read and one write operation:
- get(key) returns the stored value, or None when the key is absent
- set(key, value, options) stores a value; options are backend specific
  (e.g. ``expires_in``)
- get_multi(keys) is optional and returns a mapping holding present keys only

Backends following the read/write naming (``read``, ``write``,
``read_multi``) are wrapped in a ReadWriteAdapter once, when they are
configured, instead of being probed on every call.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from cacher.errors import ConfigurationError


@runtime_checkable
class CacheBackend(Protocol):
    """Synchronous key-value backend."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> Any: ...


@runtime_checkable
class BatchCacheBackend(CacheBackend, Protocol):
    """Backend that also supports batch reads."""

    def get_multi(self, keys: Sequence[str]) -> Mapping[str, Any]: ...


@runtime_checkable
class AsyncCacheBackend(Protocol):
    """Asynchronous key-value backend."""

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> Any: ...


class ReadWriteAdapter:
    """Adapts a read/write/read_multi backend to the get/set interface."""

    def __init__(self, wrapped: Any) -> None:
        self.wrapped = wrapped

    def get(self, key: str) -> Any:
        return self.wrapped.read(key)

    def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> Any:
        if options:
            return self.wrapped.write(key, value, dict(options))
        return self.wrapped.write(key, value)

    def get_multi(self, keys: Sequence[str]) -> Mapping[str, Any]:
        read_multi = getattr(self.wrapped, "read_multi", None)
        if read_multi is None:
            raise ConfigurationError(
                f"{type(self.wrapped).__name__} does not support batch reads"
            )
        return read_multi(*keys)

    def __repr__(self) -> str:
        return f"ReadWriteAdapter({self.wrapped!r})"


def _has_methods(obj: Any, *names: str) -> bool:
    return all(callable(getattr(obj, name, None)) for name in names)


def as_backend(obj: Any) -> Any:
    """Return ``obj`` as a get/set backend, adapting read/write backends.

    Raises:
        ConfigurationError: If ``obj`` exposes neither interface
    """
    if _has_methods(obj, "get", "set"):
        return obj
    if _has_methods(obj, "read", "write"):
        return ReadWriteAdapter(obj)
    raise ConfigurationError(
        f"{type(obj).__name__} is not a cache backend (expected get/set or read/write methods)"
    )


def backend_name(backend: Any) -> str:
    """Short backend label used in logs and metrics."""
    if isinstance(backend, ReadWriteAdapter):
        return type(backend.wrapped).__name__
    return type(backend).__name__
