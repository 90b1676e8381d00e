"""
CLI utility helpers — backend construction, error reporting and output.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from elasticcache.core.cache import ElasticsearchBackend
from elasticcache.core.errors import ElasticCacheError
from elasticcache.core.factory import create_backend
from elasticcache.core.logging import configure_logging
from elasticcache.core.settings import ElasticCacheSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Backend helper ───────────────────────────────────────────────────────


def load_settings() -> ElasticCacheSettings:
    """Read settings from the environment and configure logging from them."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_format == "json")
    return settings


def open_backend(index: str | None = None) -> ElasticsearchBackend:
    """Build a backend from the environment, optionally for another index."""
    return create_backend(load_settings(), index_name=index)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print elasticcache errors to stderr and exit with status 1."""
    try:
        yield
    except ElasticCacheError as e:
        err_console.print(
            f"[bold red]Error[/bold red] ({e.__class__.__name__}): {e.message}"
        )
        raise typer.Exit(code=1) from e


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as a two-column table."""
    table = Table(title=title or None, show_header=False, pad_edge=False)
    table.add_column("key", style="cyan")
    table.add_column("value", overflow="fold")
    for key, value in data.items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


def print_lines(items: list[str]) -> None:
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    for item in items:
        console.print(item, markup=False, highlight=False)
