"""CLI commands for inspecting caches.

Provides command-line interface using Typer:
- cacher key: Show the physical backend key for a logical key
- cacher get: Read and decode a cached value from Redis
- cacher exists: Check whether a key is cached in Redis
- cacher config: Show effective settings

Usage:
    cacher --help
    cacher key "users/42" --namespace app --serialize
    cacher get "users/42" --redis-url redis://localhost:6379/0
    cacher exists "users/42"
    cacher config
"""

import typer

from cacher.cli.config_cmd import config
from cacher.cli.exists_cmd import exists
from cacher.cli.get_cmd import get
from cacher.cli.key_cmd import key
from cacher.config import settings
from cacher.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="cacher",
    help="Inspect read-through caches",
    no_args_is_help=True,
)

# Add commands
app.command("key", help="Show the physical backend key for a logical key")(key)
app.command("get", help="Read and decode a cached value")(get)
app.command("exists", help="Check whether a key is cached")(exists)
app.command("config", help="Show effective settings")(config)


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log cache operations at DEBUG level",
    ),
) -> None:
    """Inspect read-through caches."""
    configure_logging(
        json_format=settings.log_json,
        level="DEBUG" if verbose else settings.log_level,
    )


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
