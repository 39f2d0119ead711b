"""Cache key schema.

Key format: [{namespace}/]{key}[/marshal]

Where:
- namespace: optional prefix isolating one cache user from another
- key: the logical key, or "sha1/{hex digest}" when the decorated logical key
  exceeds the maximum key size
- marshal: suffix marking values written by the structured serializer

The format is shared with entries written by earlier deployments and must not
change.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

HASH_PREFIX = "sha1"
SERIALIZED_SUFFIX = "marshal"

_HASHED_KEY_RE = re.compile(r"^sha1/[0-9a-f]{40}$")


def hash_key(key: str) -> str:
    """Return the fixed-length hashed form of a logical key."""
    digest = hashlib.sha1(key.encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{HASH_PREFIX}/{digest}"


def is_hashed_key(key: str) -> bool:
    """Check whether an undecorated key is in hashed form."""
    return _HASHED_KEY_RE.match(key) is not None


@dataclass(frozen=True)
class CacheKeys:
    """Physical key generator for one namespace/serialization setting."""

    namespace: str | None = None
    serialize: bool = False
    max_key_size: int = 250

    def decorate(self, key: str) -> str:
        """Apply namespace prefix and serialization suffix."""
        if self.namespace is not None:
            key = f"{self.namespace}/{key}"
        if self.serialize:
            key = f"{key}/{SERIALIZED_SUFFIX}"
        return key

    def prepare(self, key: str) -> str:
        """Derive the physical backend key for a logical key.

        Length is measured in bytes on the decorated form. Overlong keys are
        replaced by their hashed form, decorated the same way.
        """
        decorated = self.decorate(key)
        if len(decorated.encode("utf-8")) > self.max_key_size:
            decorated = self.decorate(hash_key(key))
        return decorated

    def parse_key(self, physical: str) -> dict[str, str | bool] | None:
        """Split a physical key into its components.

        Returns None if the key wasn't produced by this scheme.
        """
        body = physical
        if self.namespace is not None:
            prefix = f"{self.namespace}/"
            if not body.startswith(prefix):
                return None
            body = body[len(prefix) :]
        if self.serialize:
            suffix = f"/{SERIALIZED_SUFFIX}"
            if not body.endswith(suffix):
                return None
            body = body[: -len(suffix)]

        return {
            "namespace": self.namespace or "",
            "key": body,
            "hashed": is_hashed_key(body),
        }
