"""Redis backends.

Uses redis-py clients (sync and asyncio) with connection pooling. Values are
stored as-is: in pass-through mode they must be types Redis accepts
(bytes, str, int, float), and they read back as bytes.

Write options:
- expires_in: TTL in seconds (or a timedelta), sent as EX
- nx / xx / keepttl: passed through to SET
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import redis
import redis.asyncio

if TYPE_CHECKING:
    from redis import Redis
    from redis.asyncio import Redis as AsyncRedis

_PASSTHROUGH_OPTIONS = ("nx", "xx", "keepttl")


def _set_kwargs(options: Mapping[str, Any] | None) -> dict[str, Any]:
    if not options:
        return {}
    kwargs = {name: options[name] for name in _PASSTHROUGH_OPTIONS if name in options}
    expires_in = options.get("expires_in", options.get("ex"))
    if expires_in is not None:
        kwargs["ex"] = expires_in
    return kwargs


class RedisBackend:
    """Cache backend on a synchronous Redis client."""

    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisBackend:
        """Create a backend with a pooled client for ``url``."""
        kwargs.setdefault("decode_responses", False)
        return cls(redis.Redis.from_url(url, **kwargs))

    def get(self, key: str) -> Any:
        return self.client.get(key)

    def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> None:
        self.client.set(key, value, **_set_kwargs(options))

    def get_multi(self, keys: Sequence[str]) -> dict[str, Any]:
        if not keys:
            return {}
        values = self.client.mget(list(keys))
        return {key: value for key, value in zip(keys, values) if value is not None}

    def close(self) -> None:
        self.client.close()


class AsyncRedisBackend:
    """Cache backend on an asyncio Redis client."""

    def __init__(self, client: AsyncRedis) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> AsyncRedisBackend:
        kwargs.setdefault("decode_responses", False)
        return cls(redis.asyncio.from_url(url, **kwargs))

    async def get(self, key: str) -> Any:
        return await self.client.get(key)

    async def set(self, key: str, value: Any, options: Mapping[str, Any] | None = None) -> None:
        await self.client.set(key, value, **_set_kwargs(options))

    async def get_multi(self, keys: Sequence[str]) -> dict[str, Any]:
        if not keys:
            return {}
        values = await self.client.mget(list(keys))
        return {key: value for key, value in zip(keys, values) if value is not None}

    async def close(self) -> None:
        await self.client.aclose()
