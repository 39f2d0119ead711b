"""CLI command for checking whether a key is cached.

Usage:
    cacher exists "users/42"
"""

from __future__ import annotations

import typer

from cacher.cli.options import (
    MaxKeySizeOption,
    NamespaceOption,
    RedisUrlOption,
    SerializeOption,
    build_cacher,
)


def exists(
    logical_key: str = typer.Argument(..., help="Logical cache key"),
    namespace: str | None = NamespaceOption,
    serialize: bool | None = SerializeOption,
    max_key_size: int | None = MaxKeySizeOption,
    redis_url: str | None = RedisUrlOption,
) -> None:
    """Print "true" and exit 0 if LOGICAL_KEY is cached, else "false" and exit 1."""
    cache = build_cacher(redis_url, namespace, serialize, max_key_size)
    found = cache.exists(logical_key)
    typer.echo("true" if found else "false")
    if not found:
        raise typer.Exit(code=1)
