"""Configuration for the cache layer.

Two levels of configuration:
- CacheDefaults: the process-wide default registry (``defaults``), established
  once at startup and restored by ``reset_defaults()``.
- CacheConfig: per-instance overrides. Every option an instance has not set
  explicitly is read from its defaults registry on each access, so changing a
  default affects every instance that never overrode it.

Environment settings (``CACHER_*``) are only applied when requested through
``CacheDefaults.load_settings()``; ``reset()`` always restores the factory
values.

Configuration is expected to be established at startup (or mutated inside
tests). Concurrent writers are not coordinated; callers must not reconfigure
an instance while other threads or tasks use it.

Example:
    from cacher.config import configure_defaults

    configure_defaults(backend=MemoryBackend(), enabled=True)
    config = CacheConfig(namespace="users")
    config.namespace      # "users"
    config.max_key_size   # 250, read from the defaults
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cacher.backends import as_backend
from cacher.backends.redis import RedisBackend
from cacher.errors import ConfigurationError

OPTION_NAMES = ("backend", "namespace", "max_key_size", "serialize", "enabled")

DEFAULT_MAX_KEY_SIZE = 250

_UNSET: Any = object()

_C = TypeVar("_C")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CACHER_", env_file=".env", extra="ignore")

    # Cache defaults
    namespace: str | None = None
    max_key_size: int = Field(default=DEFAULT_MAX_KEY_SIZE, gt=0)
    serialize: bool = False
    enabled: bool = False

    # Backend
    redis_url: str | None = None

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()


def _coerce_option(name: str, value: Any) -> Any:
    """Validate an option value, returning the value to store."""
    if name not in OPTION_NAMES:
        raise ConfigurationError(f"unknown cache option: {name!r}")

    if name == "backend":
        return None if value is None else as_backend(value)

    if name == "namespace":
        if value is None or value is False:
            return None
        if not isinstance(value, str):
            raise ConfigurationError(f"namespace must be a string, got {type(value).__name__}")
        return value

    if name == "max_key_size":
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigurationError(f"max_key_size must be a positive integer, got {value!r}")
        return value

    # serialize, enabled
    return bool(value)


class CacheDefaults:
    """Process-wide default values for every cache option."""

    backend: Any
    namespace: str | None
    max_key_size: int
    serialize: bool
    enabled: bool

    def __init__(self) -> None:
        self.reset()

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, _coerce_option(name, value))

    def reset(self) -> CacheDefaults:
        """Restore factory defaults."""
        self.backend = None
        self.namespace = None
        self.max_key_size = DEFAULT_MAX_KEY_SIZE
        # Most backends already handle their own value encoding
        self.serialize = False
        self.enabled = False
        return self

    def configure(
        self,
        callback: Callable[[CacheDefaults], Any] | None = None,
        **options: Any,
    ) -> CacheDefaults:
        """Update defaults from keyword options and/or a callback."""
        for name, value in options.items():
            setattr(self, name, value)
        if callback is not None:
            callback(self)
        return self

    def load_settings(self, source: Settings | None = None) -> CacheDefaults:
        """Apply environment settings to the defaults.

        Builds a RedisBackend when ``redis_url`` is configured.
        """
        source = source or settings
        self.namespace = source.namespace
        self.max_key_size = source.max_key_size
        self.serialize = source.serialize
        self.enabled = source.enabled
        if source.redis_url:
            self.backend = RedisBackend.from_url(source.redis_url)
        return self

    def as_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in OPTION_NAMES}


# Global defaults registry
defaults = CacheDefaults()


def get_defaults() -> CacheDefaults:
    """Get the global defaults registry."""
    return defaults


def reset_defaults() -> CacheDefaults:
    """Restore the global defaults to factory values."""
    return defaults.reset()


def configure_defaults(
    callback: Callable[[CacheDefaults], Any] | None = None,
    **options: Any,
) -> CacheDefaults:
    """Configure the global defaults registry."""
    return defaults.configure(callback, **options)


class CacheConfig:
    """Per-instance cache configuration with late-bound defaults.

    Args:
        options: Mapping of option name to value
        configure: Callback receiving the new instance for further setup
        defaults: Defaults registry to fall back to (global one if omitted)
        **kwargs: Options, same as ``options``
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        configure: Callable[[Any], Any] | None = None,
        *,
        defaults: CacheDefaults | None = None,
        **kwargs: Any,
    ) -> None:
        self._defaults = defaults if defaults is not None else get_defaults()
        self._overrides: dict[str, Any] = {}
        # Identifies this instance in context-local bust state
        self.cache_id = uuid4().hex

        for name, value in {**(options or {}), **kwargs}.items():
            self._set_option(name, value)

        if configure is not None:
            self.configure(configure)

    def configure(self: _C, callback: Callable[[_C], Any]) -> _C:
        """Pass this instance to ``callback`` and return it."""
        callback(self)
        return self

    @property
    def defaults(self) -> CacheDefaults:
        return self._defaults

    def _get_option(self, name: str) -> Any:
        value = self._overrides.get(name, _UNSET)
        if value is _UNSET:
            return getattr(self._defaults, name)
        return value

    def _set_option(self, name: str, value: Any) -> None:
        value = _coerce_option(name, value)
        if name == "backend" and value is None:
            self._overrides.pop(name, None)
            return
        self._overrides[name] = value

    def is_overridden(self, name: str) -> bool:
        return name in self._overrides

    def reset(self) -> None:
        """Drop every instance override."""
        self._overrides.clear()

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    @property
    def backend(self) -> Any:
        backend = self._get_option("backend")
        if backend is None:
            raise ConfigurationError("no backend configured")
        return backend

    @backend.setter
    def backend(self, value: Any) -> None:
        self._set_option("backend", value)

    @property
    def namespace(self) -> str | None:
        return self._get_option("namespace")

    @namespace.setter
    def namespace(self, value: str | None) -> None:
        self._set_option("namespace", value)

    @property
    def namespaced(self) -> bool:
        return self.namespace is not None

    @property
    def max_key_size(self) -> int:
        return self._get_option("max_key_size")

    @max_key_size.setter
    def max_key_size(self, value: int) -> None:
        self._set_option("max_key_size", value)

    @property
    def serialize(self) -> bool:
        return self._get_option("serialize")

    @serialize.setter
    def serialize(self, value: bool) -> None:
        self._set_option("serialize", value)

    @property
    def enabled(self) -> bool:
        return self._get_option("enabled")

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._set_option("enabled", value)

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False
