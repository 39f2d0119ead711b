"""Read-through-write cache engine.

Sits in front of any get/set backend and adds:
- Read-through writes: ``get`` computes and stores the value on a miss
- Key safety: namespacing, serialization suffix, hashing of overlong keys
- Stored None values that stay distinguishable from missing keys
- Busting: forcing recompute-and-overwrite per call or per execution context

Example:
    cache = Cacher(backend=RedisBackend.from_url(url), namespace="users", enabled=True)

    user = cache.get(f"user/{user_id}", lambda: load_user(user_id))

    # Build composite values in place
    stats = cache.get("stats", build=lambda acc: acc.update(total=count()))

    # Recompute everything read inside the block
    with cache.busted():
        refresh_dashboard(cache)

Per call, ``get`` and ``set`` take one of these paths:
- disabled: run the callback and return its value, no backend I/O
- forced (``force=True`` or busting): compute, write, return
- otherwise: read; a hit is decoded and returned, a miss is written

Concurrent misses on the same key are not coalesced: each caller that
observes the miss computes and writes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

from cacher.backends import backend_name
from cacher.bust import is_busting, set_busting
from cacher.config import CacheConfig, CacheDefaults
from cacher.errors import ConfigurationError
from cacher.keys import CacheKeys
from cacher.observability.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_cache_write,
)
from cacher.serialization import Serializer, decode_value, default_serializer, encode_value

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

Compute = Callable[[], Any]
Build = Callable[[dict[str, Any]], Any]


def check_callbacks(compute: Any, build: Any) -> None:
    if compute is not None and build is not None:
        raise TypeError("pass either compute or build, not both")


class BaseCacher(CacheConfig):
    """Key preparation, value encoding and bust control shared by engines.

    Args:
        options: Mapping of option name to value
        configure: Callback receiving the new instance for further setup
        defaults: Defaults registry to fall back to
        serializer: Structured codec used when ``serialize`` is on
        **kwargs: Options (backend, namespace, max_key_size, serialize, enabled)
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        configure: Callable[[Any], Any] | None = None,
        *,
        defaults: CacheDefaults | None = None,
        serializer: Serializer | None = None,
        **kwargs: Any,
    ) -> None:
        self.serializer = serializer or default_serializer
        super().__init__(options, configure, defaults=defaults, **kwargs)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(namespace={self.namespace!r}, "
            f"serialize={self.serialize}, enabled={self.enabled})"
        )

    # -------------------------------------------------------------------------
    # Keys and values
    # -------------------------------------------------------------------------

    @property
    def keys(self) -> CacheKeys:
        """Key scheme for the current configuration."""
        return CacheKeys(
            namespace=self.namespace,
            serialize=self.serialize,
            max_key_size=self.max_key_size,
        )

    def prepare_key(self, key: str) -> str:
        """Physical backend key for a logical key."""
        return self.keys.prepare(key)

    def encode(self, value: Any) -> Any:
        return encode_value(value, serialize=self.serialize, serializer=self.serializer)

    def decode(self, envelope: Any) -> Any:
        return decode_value(envelope, serialize=self.serialize, serializer=self.serializer)

    # -------------------------------------------------------------------------
    # Bust control
    # -------------------------------------------------------------------------

    def bust(self, func: Callable[[], _T] | None = None) -> _T | None:
        """Force writes on read in the current execution context.

        With ``func``, busting only lasts while ``func`` runs and is cleared
        on every exit path.
        """
        set_busting(self.cache_id, True)
        if func is None:
            return None
        try:
            return func()
        finally:
            self.unbust()

    def unbust(self) -> None:
        """Stop busting in the current execution context."""
        set_busting(self.cache_id, False)

    @property
    def busting(self) -> bool:
        return is_busting(self.cache_id)

    @contextmanager
    def busted(self) -> Iterator[None]:
        """Bust for the duration of a ``with`` block."""
        set_busting(self.cache_id, True)
        try:
            yield
        finally:
            self.unbust()


class Cacher(BaseCacher):
    """Synchronous read-through-write cache."""

    def exists(self, key: str) -> bool:
        """Check whether a key is cached; a stored None counts as present."""
        if not self.enabled:
            return False
        return self.backend.get(self.prepare_key(key)) is not None

    def get(
        self,
        key: str,
        compute: Compute | None = None,
        *,
        build: Build | None = None,
        force: bool = False,
        **options: Any,
    ) -> Any:
        """Get a cached value, computing and storing it on a miss.

        Args:
            key: Logical key
            compute: Returns the value to cache
            build: Populates a fresh dict that becomes the value
            force: Recompute and overwrite even if cached
            **options: Passed to the backend on write

        Returns:
            The cached or computed value; None on a miss without a callback
        """
        check_callbacks(compute, build)

        if not self.enabled:
            if compute is None and build is None:
                return None
            return self._produce(compute, build)

        if force or self.busting:
            return self._write(key, compute, build, options, reason="forced")

        backend = self.backend
        physical = self.prepare_key(key)
        envelope = backend.get(physical)

        if envelope is None:
            record_cache_miss(backend_name(backend))
            logger.debug(f"Cache miss for {physical}")
            if compute is None and build is None:
                return None
            return self._write(key, compute, build, options, reason="miss")

        record_cache_hit(backend_name(backend))
        return self.decode(envelope)

    def set(
        self,
        key: str,
        compute: Compute | None = None,
        *,
        build: Build | None = None,
        **options: Any,
    ) -> Any:
        """Compute a value and store it, returning the computed value."""
        check_callbacks(compute, build)
        return self._write(key, compute, build, options, reason="set")

    def get_multi(self, keys: Sequence[str]) -> list[Any]:
        """Read several keys with one backend call.

        Returns one value per input key, in input order, with None for keys
        that aren't cached. Doesn't check ``enabled`` or bust state and never
        writes.
        """
        scheme = self.keys
        physical = [scheme.prepare(key) for key in keys]

        backend = self.backend
        if not callable(getattr(backend, "get_multi", None)):
            raise ConfigurationError(f"{backend_name(backend)} does not support batch reads")

        found = backend.get_multi(physical)
        decoded = {
            name: self.decode(envelope) for name, envelope in found.items() if envelope is not None
        }
        return [decoded.get(name) for name in physical]

    def _produce(self, compute: Compute | None, build: Build | None) -> Any:
        if build is not None:
            accumulator: dict[str, Any] = {}
            build(accumulator)
            return accumulator
        if compute is None:
            raise TypeError("a compute or build callback is required")
        return compute()

    def _write(
        self,
        key: str,
        compute: Compute | None,
        build: Build | None,
        options: dict[str, Any],
        reason: str,
    ) -> Any:
        if not self.enabled:
            return self._produce(compute, build)

        backend = self.backend
        value = self._produce(compute, build)
        physical = self.prepare_key(key)
        if reason == "forced":
            logger.debug(f"Forced cache write for {physical}")

        backend.set(physical, self.encode(value), options)
        record_cache_write(backend_name(backend), reason)
        return value
