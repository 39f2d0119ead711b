"""Read-through-write cache for asyncio backends.

Same contract as ``cacher.engine.Cacher`` with awaitable backend calls.
Callbacks may be plain functions or coroutine functions.

Example:
    cache = AsyncCacher(backend=AsyncRedisBackend.from_url(url), enabled=True)

    user = await cache.get(f"user/{user_id}", lambda: fetch_user(user_id))

    # Bust state is per task: other tasks sharing ``cache`` still read
    await cache.bust(refresh_everything)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from typing import Any

from cacher.backends import AsyncCacheBackend, backend_name
from cacher.bust import set_busting
from cacher.engine import BaseCacher, check_callbacks
from cacher.errors import ConfigurationError
from cacher.observability.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_cache_write,
)

logger = logging.getLogger(__name__)

AsyncCompute = Callable[[], Any]
AsyncBuild = Callable[[dict[str, Any]], Any]


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class AsyncCacher(BaseCacher):
    """Asynchronous read-through-write cache."""

    def bust(self, func: Callable[[], Any] | None = None) -> Any:  # type: ignore[override]
        """Force writes on read in the current task.

        Without ``func`` busting starts immediately. With ``func`` this returns
        an awaitable that busts while ``func`` runs (awaiting its result when
        it is a coroutine) and clears the flag on every exit path.
        """
        if func is None:
            set_busting(self.cache_id, True)
            return None
        return self._bust_scoped(func)

    async def _bust_scoped(self, func: Callable[[], Any]) -> Any:
        set_busting(self.cache_id, True)
        try:
            return await _resolve(func())
        finally:
            self.unbust()

    async def exists(self, key: str) -> bool:
        """Check whether a key is cached; a stored None counts as present."""
        if not self.enabled:
            return False
        return (await self.backend.get(self.prepare_key(key))) is not None

    async def get(
        self,
        key: str,
        compute: AsyncCompute | None = None,
        *,
        build: AsyncBuild | None = None,
        force: bool = False,
        **options: Any,
    ) -> Any:
        """Get a cached value, computing and storing it on a miss."""
        check_callbacks(compute, build)

        if not self.enabled:
            if compute is None and build is None:
                return None
            return await self._produce(compute, build)

        if force or self.busting:
            return await self._write(key, compute, build, options, reason="forced")

        backend: AsyncCacheBackend = self.backend
        physical = self.prepare_key(key)
        envelope = await backend.get(physical)

        if envelope is None:
            record_cache_miss(backend_name(backend))
            logger.debug(f"Cache miss for {physical}")
            if compute is None and build is None:
                return None
            return await self._write(key, compute, build, options, reason="miss")

        record_cache_hit(backend_name(backend))
        return self.decode(envelope)

    async def set(
        self,
        key: str,
        compute: AsyncCompute | None = None,
        *,
        build: AsyncBuild | None = None,
        **options: Any,
    ) -> Any:
        """Compute a value and store it, returning the computed value."""
        check_callbacks(compute, build)
        return await self._write(key, compute, build, options, reason="set")

    async def get_multi(self, keys: Sequence[str]) -> list[Any]:
        """Read several keys with one backend call, in input order."""
        scheme = self.keys
        physical = [scheme.prepare(key) for key in keys]

        backend = self.backend
        if not callable(getattr(backend, "get_multi", None)):
            raise ConfigurationError(f"{backend_name(backend)} does not support batch reads")

        found = await backend.get_multi(physical)
        decoded = {
            name: self.decode(envelope) for name, envelope in found.items() if envelope is not None
        }
        return [decoded.get(name) for name in physical]

    async def _produce(self, compute: AsyncCompute | None, build: AsyncBuild | None) -> Any:
        if build is not None:
            accumulator: dict[str, Any] = {}
            await _resolve(build(accumulator))
            return accumulator
        if compute is None:
            raise TypeError("a compute or build callback is required")
        return await _resolve(compute())

    async def _write(
        self,
        key: str,
        compute: AsyncCompute | None,
        build: AsyncBuild | None,
        options: dict[str, Any],
        reason: str,
    ) -> Any:
        if not self.enabled:
            return await self._produce(compute, build)

        backend: AsyncCacheBackend = self.backend
        value = await self._produce(compute, build)
        physical = self.prepare_key(key)
        if reason == "forced":
            logger.debug(f"Forced cache write for {physical}")

        await backend.set(physical, self.encode(value), options)
        record_cache_write(backend_name(backend), reason)
        return value
