"""Exceptions raised by the cache layer.

Backend errors (connectivity failures, key rejections) are never wrapped;
they propagate to the caller unchanged.
"""

from __future__ import annotations


class CacherError(Exception):
    """Base exception for cache layer errors."""

    pass


class ConfigurationError(CacherError):
    """The cache is misconfigured (e.g. no backend configured)."""

    pass


class SerializationError(CacherError, TypeError):
    """A value cannot be encoded by the structured codec."""

    pass


class DeserializationError(CacherError):
    """A stored envelope could not be decoded.

    Raised after the bounded type resolution retry has been exhausted, or
    when the payload itself is malformed.
    """

    def __init__(self, message: str, type_name: str | None = None) -> None:
        super().__init__(message)
        self.type_name = type_name
