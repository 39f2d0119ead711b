"""Options shared by the CLI commands."""

from __future__ import annotations

import typer

from cacher.backends import RedisBackend
from cacher.config import settings
from cacher.engine import Cacher
from cacher.keys import CacheKeys

NamespaceOption = typer.Option(
    None,
    "--namespace",
    "-n",
    help="Key namespace (defaults to CACHER_NAMESPACE)",
)
SerializeOption = typer.Option(
    None,
    "--serialize/--no-serialize",
    help="Values were written by the structured serializer (defaults to CACHER_SERIALIZE)",
)
MaxKeySizeOption = typer.Option(
    None,
    "--max-key-size",
    min=1,
    help="Maximum key size before hashing (defaults to CACHER_MAX_KEY_SIZE)",
)
RedisUrlOption = typer.Option(
    None,
    "--redis-url",
    help="Redis URL (defaults to CACHER_REDIS_URL)",
)


def build_keys(
    namespace: str | None,
    serialize: bool | None,
    max_key_size: int | None,
) -> CacheKeys:
    """Key scheme from command options, falling back to settings."""
    return CacheKeys(
        namespace=namespace if namespace is not None else settings.namespace,
        serialize=serialize if serialize is not None else settings.serialize,
        max_key_size=max_key_size if max_key_size is not None else settings.max_key_size,
    )


def build_cacher(
    redis_url: str | None,
    namespace: str | None,
    serialize: bool | None,
    max_key_size: int | None,
) -> Cacher:
    """Enabled Cacher over Redis for the given options."""
    url = redis_url or settings.redis_url
    if not url:
        raise typer.BadParameter(
            "no Redis URL configured (pass --redis-url or set CACHER_REDIS_URL)"
        )

    keys = build_keys(namespace, serialize, max_key_size)
    return Cacher(
        backend=RedisBackend.from_url(url),
        namespace=keys.namespace,
        serialize=keys.serialize,
        max_key_size=keys.max_key_size,
        enabled=True,
    )
