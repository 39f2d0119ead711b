"""Global pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from cacher.backends import AsyncMemoryBackend, MemoryBackend
from cacher.config import reset_defaults
from cacher.engine import Cacher


@pytest.fixture(autouse=True)
def factory_defaults() -> Iterator[None]:
    """Every test starts and ends with factory defaults."""
    reset_defaults()
    yield
    reset_defaults()


@pytest.fixture
def backend() -> MemoryBackend:
    """Memory backend rejecting keys over 100 characters."""
    return MemoryBackend(max_key_length=100)


@pytest.fixture
def async_backend() -> AsyncMemoryBackend:
    return AsyncMemoryBackend(max_key_length=100)


@pytest.fixture
def cache(backend: MemoryBackend) -> Cacher:
    """Enabled cache over the memory backend."""
    return Cacher(backend=backend, enabled=True)
