"""Tests for cache key generation."""

import hashlib
import re

from cacher.keys import CacheKeys, hash_key, is_hashed_key

HASHED = re.compile(r"^sha1/[0-9a-f]{40}$")


class TestCacheKeys:
    """Test physical key generation."""

    def test_plain_key(self) -> None:
        """Key without namespace or serialization is unchanged."""
        assert CacheKeys().prepare("foo") == "foo"

    def test_namespaced_key(self) -> None:
        """Namespace is prefixed with a slash."""
        assert CacheKeys(namespace="ns").prepare("foo") == "ns/foo"

    def test_serialized_key(self) -> None:
        """Serialized values get the /marshal suffix."""
        assert CacheKeys(serialize=True).prepare("foo") == "foo/marshal"

    def test_namespaced_serialized_key(self) -> None:
        """Namespace and suffix combine."""
        keys = CacheKeys(namespace="ns", serialize=True)
        assert keys.prepare("foo") == "ns/foo/marshal"

    def test_prepare_is_deterministic(self) -> None:
        """Same key and settings always give the same physical key."""
        keys = CacheKeys(namespace="ns", max_key_size=20)
        long_key = "x" * 50
        assert keys.prepare("foo") == keys.prepare("foo")
        assert keys.prepare(long_key) == keys.prepare(long_key)

    def test_long_key_is_hashed(self) -> None:
        """Keys longer than max_key_size are replaced with their SHA-1."""
        key = "a_really_long_key/" * 100
        physical = CacheKeys(max_key_size=100).prepare(key)

        assert HASHED.match(physical)
        assert physical == "sha1/" + hashlib.sha1(key.encode()).hexdigest()

    def test_hashed_key_is_decorated(self) -> None:
        """Hashed keys still get namespace and suffix."""
        key = "k" * 300
        keys = CacheKeys(namespace="ns", serialize=True, max_key_size=250)

        assert keys.prepare(key) == keys.decorate(hash_key(key))
        assert keys.prepare(key).startswith("ns/sha1/")
        assert keys.prepare(key).endswith("/marshal")

    def test_length_checked_on_decorated_key(self) -> None:
        """A short key under a long namespace can still be hashed."""
        keys = CacheKeys(namespace="n" * 20, max_key_size=25)

        assert keys.prepare("abc") == "n" * 20 + "/abc"
        assert keys.prepare("abcdef") == keys.decorate(hash_key("abcdef"))

    def test_key_at_limit_is_not_hashed(self) -> None:
        """A decorated key exactly max_key_size long is kept."""
        assert CacheKeys(max_key_size=10).prepare("x" * 10) == "x" * 10

    def test_length_measured_in_bytes(self) -> None:
        """Multi-byte characters count by their UTF-8 size."""
        key = "é" * 6  # 12 bytes
        assert HASHED.match(CacheKeys(max_key_size=10).prepare(key))

    def test_distinct_long_keys_get_distinct_hashes(self) -> None:
        """Different long keys map to different physical keys."""
        keys = CacheKeys(max_key_size=10)
        assert keys.prepare("a" * 50) != keys.prepare("b" * 50)

    def test_parse_key(self) -> None:
        """Physical keys are split into their parts."""
        keys = CacheKeys(namespace="ns", serialize=True)
        result = keys.parse_key("ns/foo/marshal")

        assert result == {"namespace": "ns", "key": "foo", "hashed": False}

    def test_parse_hashed_key(self) -> None:
        keys = CacheKeys(max_key_size=10)
        result = keys.parse_key(keys.prepare("z" * 40))

        assert result is not None
        assert result["hashed"] is True

    def test_parse_foreign_key_returns_none(self) -> None:
        """Keys from another namespace or mode aren't parsed."""
        assert CacheKeys(namespace="ns").parse_key("other/foo") is None
        assert CacheKeys(serialize=True).parse_key("foo") is None


def test_is_hashed_key() -> None:
    assert is_hashed_key(hash_key("anything"))
    assert not is_hashed_key("sha1/short")
    assert not is_hashed_key("foo")
