"""Cache backends.

Provides the backend protocols, the read/write adapter, and concrete
in-memory and Redis backends.
"""

from cacher.backends.base import (
    AsyncCacheBackend,
    BatchCacheBackend,
    CacheBackend,
    ReadWriteAdapter,
    as_backend,
    backend_name,
)
from cacher.backends.memory import AsyncMemoryBackend, KeyTooLongError, MemoryBackend
from cacher.backends.redis import AsyncRedisBackend, RedisBackend

__all__ = [
    # Protocols
    "CacheBackend",
    "BatchCacheBackend",
    "AsyncCacheBackend",
    # Adaptation
    "ReadWriteAdapter",
    "as_backend",
    "backend_name",
    # Backends
    "MemoryBackend",
    "AsyncMemoryBackend",
    "KeyTooLongError",
    "RedisBackend",
    "AsyncRedisBackend",
]
