"""CLI command for showing effective settings.

Usage:
    cacher config
"""

from __future__ import annotations

from cacher.backends import backend_name
from cacher.config import CacheDefaults, settings


def config() -> None:
    """Show settings read from CACHER_* environment variables and .env."""
    from rich.console import Console
    from rich.table import Table

    console = Console()

    table = Table(title="Cacher settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_column("Environment", style="dim")

    for name, value in settings.model_dump().items():
        table.add_row(name, repr(value), f"CACHER_{name.upper()}")

    console.print(table)

    # Defaults a process gets from CacheDefaults.load_settings()
    defaults = CacheDefaults().load_settings(settings)
    defaults_table = Table(title="Cache defaults")
    defaults_table.add_column("Option", style="cyan")
    defaults_table.add_column("Value")

    for name, value in defaults.as_dict().items():
        if name == "backend":
            shown = backend_name(value) if value is not None else "-"
        else:
            shown = repr(value)
        defaults_table.add_row(name, shown)

    console.print(defaults_table)
