"""Read-through-write caching in front of any key-value backend.

Provides:
- Cacher / AsyncCacher: compute-or-fetch engines with namespacing, key
  hashing, optional structured serialization and busting
- CacheDefaults: process-wide defaults every instance falls back to
- Backends: in-memory, Redis, and an adapter for read/write style stores

Usage:
    from cacher import Cacher, MemoryBackend, configure_defaults

    configure_defaults(backend=MemoryBackend(), enabled=True)

    cache = Cacher(namespace="reports")
    report = cache.get("monthly", lambda: build_report())
"""

from cacher.__version__ import __version__
from cacher.aio import AsyncCacher
from cacher.backends import (
    AsyncMemoryBackend,
    AsyncRedisBackend,
    CacheBackend,
    MemoryBackend,
    ReadWriteAdapter,
    RedisBackend,
)
from cacher.config import (
    CacheConfig,
    CacheDefaults,
    Settings,
    configure_defaults,
    get_defaults,
    reset_defaults,
    settings,
)
from cacher.engine import Cacher
from cacher.errors import (
    CacherError,
    ConfigurationError,
    DeserializationError,
    SerializationError,
)
from cacher.keys import CacheKeys
from cacher.serialization import (
    NIL_SENTINEL,
    Serializer,
    TypeRegistry,
    register_type,
    type_registry,
)

__all__ = [
    "__version__",
    # Engines
    "Cacher",
    "AsyncCacher",
    # Configuration
    "CacheConfig",
    "CacheDefaults",
    "Settings",
    "settings",
    "configure_defaults",
    "get_defaults",
    "reset_defaults",
    # Keys and serialization
    "CacheKeys",
    "NIL_SENTINEL",
    "Serializer",
    "TypeRegistry",
    "register_type",
    "type_registry",
    # Backends
    "CacheBackend",
    "MemoryBackend",
    "AsyncMemoryBackend",
    "RedisBackend",
    "AsyncRedisBackend",
    "ReadWriteAdapter",
    # Errors
    "CacherError",
    "ConfigurationError",
    "DeserializationError",
    "SerializationError",
]
