"""CLI command for reading cached values.

Usage:
    cacher get "users/42"
    cacher get "users/42" --serialize --format json
"""

from __future__ import annotations

from typing import Any

import orjson
import typer

from cacher.cli.options import (
    MaxKeySizeOption,
    NamespaceOption,
    RedisUrlOption,
    SerializeOption,
    build_cacher,
)


def _render(value: Any, output_format: str) -> str:
    if output_format == "json":
        return orjson.dumps(value, default=repr, option=orjson.OPT_INDENT_2).decode()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return repr(value)


def get(
    logical_key: str = typer.Argument(..., help="Logical cache key"),
    namespace: str | None = NamespaceOption,
    serialize: bool | None = SerializeOption,
    max_key_size: int | None = MaxKeySizeOption,
    redis_url: str | None = RedisUrlOption,
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Print the cached value for LOGICAL_KEY.

    Exits with status 1 when the key isn't cached.
    """
    cache = build_cacher(redis_url, namespace, serialize, max_key_size)
    physical = cache.prepare_key(logical_key)

    # Presence and value come from the same read
    envelope = cache.backend.get(physical)
    if envelope is None:
        typer.echo(f"not cached: {physical}", err=True)
        raise typer.Exit(code=1)

    typer.echo(_render(cache.decode(envelope), output_format))
