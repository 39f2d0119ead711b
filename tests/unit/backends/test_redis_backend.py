"""Unit tests for Redis backends using in-process fake clients."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest

from cacher.aio import AsyncCacher
from cacher.backends import AsyncRedisBackend, RedisBackend
from cacher.engine import Cacher


class FakeRedis:
    """Stores bytes like Redis does with decode_responses=False."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.set_kwargs: dict[str, Any] = {}
        self.closed = False

    @staticmethod
    def _encode(value: Any) -> bytes:
        if isinstance(value, bytes):
            return value
        return str(value).encode("utf-8")

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: Any, **kwargs: Any) -> bool:
        self.data[key] = self._encode(value)
        self.set_kwargs = kwargs
        return True

    def mget(self, keys: list[str]) -> list[bytes | None]:
        return [self.data.get(key) for key in keys]

    def close(self) -> None:
        self.closed = True


class FakeAsyncRedis:
    def __init__(self) -> None:
        self.sync = FakeRedis()

    async def get(self, key: str) -> bytes | None:
        return self.sync.get(key)

    async def set(self, key: str, value: Any, **kwargs: Any) -> bool:
        return self.sync.set(key, value, **kwargs)

    async def mget(self, keys: list[str]) -> list[bytes | None]:
        return self.sync.mget(keys)

    async def aclose(self) -> None:
        self.sync.closed = True


class TestRedisBackend:
    """Tests for RedisBackend."""

    def test_set_and_get(self) -> None:
        client = FakeRedis()
        backend = RedisBackend(client)  # type: ignore[arg-type]

        backend.set("a", b"value")

        assert backend.get("a") == b"value"
        assert client.set_kwargs == {}

    def test_expires_in_becomes_ex(self) -> None:
        client = FakeRedis()
        backend = RedisBackend(client)  # type: ignore[arg-type]

        backend.set("a", b"1", {"expires_in": timedelta(minutes=5), "nx": True, "other": 1})

        assert client.set_kwargs == {"nx": True, "ex": timedelta(minutes=5)}

    def test_get_multi_skips_missing(self) -> None:
        client = FakeRedis()
        client.data = {"a": b"1", "c": b"3"}
        backend = RedisBackend(client)  # type: ignore[arg-type]

        assert backend.get_multi(["a", "b", "c"]) == {"a": b"1", "c": b"3"}
        assert backend.get_multi([]) == {}

    def test_close(self) -> None:
        client = FakeRedis()
        RedisBackend(client).close()  # type: ignore[arg-type]
        assert client.closed

    def test_from_url(self) -> None:
        backend = RedisBackend.from_url("redis://localhost:6379/2")
        kwargs = backend.client.connection_pool.connection_kwargs

        assert kwargs["db"] == 2
        assert kwargs.get("decode_responses", False) is False

    def test_nil_sentinel_through_redis(self) -> None:
        """Redis returns the sentinel as bytes; it still reads back as None."""
        cache = Cacher(backend=RedisBackend(FakeRedis()), enabled=True)  # type: ignore[arg-type]

        cache.set("nothing", lambda: None)

        assert cache.exists("nothing")
        assert cache.get("nothing", lambda: "x") is None

    def test_serialized_values_through_redis(self) -> None:
        cache = Cacher(
            backend=RedisBackend(FakeRedis()),  # type: ignore[arg-type]
            enabled=True,
            serialize=True,
            namespace="app",
        )

        cache.set("row", lambda: {"id": 1, "tags": ("a", "b")})

        assert cache.get("row") == {"id": 1, "tags": ("a", "b")}
        assert cache.get_multi(["row", "missing"]) == [{"id": 1, "tags": ("a", "b")}, None]


class TestAsyncRedisBackend:
    """Tests for AsyncRedisBackend."""

    @pytest.mark.asyncio
    async def test_roundtrip(self) -> None:
        client = FakeAsyncRedis()
        backend = AsyncRedisBackend(client)  # type: ignore[arg-type]

        await backend.set("a", b"1", {"expires_in": 30})

        assert await backend.get("a") == b"1"
        assert client.sync.set_kwargs == {"ex": 30}
        assert await backend.get_multi(["a", "b"]) == {"a": b"1"}

        await backend.close()
        assert client.sync.closed

    @pytest.mark.asyncio
    async def test_with_async_cacher(self) -> None:
        cache = AsyncCacher(
            backend=AsyncRedisBackend(FakeAsyncRedis()),  # type: ignore[arg-type]
            enabled=True,
            serialize=True,
        )

        assert await cache.get("n", lambda: [1, 2]) == [1, 2]
        assert await cache.get("n", lambda: [3]) == [1, 2]
