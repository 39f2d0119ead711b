"""CLI command for showing physical cache keys.

Usage:
    cacher key "users/42"
    cacher key "users/42" --namespace app --serialize
"""

from __future__ import annotations

import typer

from cacher.cli.options import MaxKeySizeOption, NamespaceOption, SerializeOption, build_keys


def key(
    logical_key: str = typer.Argument(..., help="Logical cache key"),
    namespace: str | None = NamespaceOption,
    serialize: bool | None = SerializeOption,
    max_key_size: int | None = MaxKeySizeOption,
    explain: bool = typer.Option(
        False,
        "--explain",
        "-e",
        help="Also show whether the key was hashed",
    ),
) -> None:
    """Print the key the backend sees for LOGICAL_KEY."""
    keys = build_keys(namespace, serialize, max_key_size)
    physical = keys.prepare(logical_key)
    typer.echo(physical)

    if explain:
        parsed = keys.parse_key(physical) or {}
        hashed = "yes" if parsed.get("hashed") else "no"
        typer.echo(f"hashed: {hashed} ({len(physical.encode('utf-8'))} bytes)")
