"""
Root Typer application for the elasticcache CLI.

Administrative access to a cache index: inspect and edit single entries,
flush by tag, and run the garbage sweep (e.g. from cron). Connection
settings come from ``ELASTICCACHE_*`` environment variables or ``.env``.
"""

from __future__ import annotations

import typer

from elasticcache.cli.utils import (
    console,
    handle_errors,
    load_settings,
    open_backend,
    print_dict,
    print_json,
    print_lines,
)

app = typer.Typer(
    name="elasticcache",
    help="elasticcache — Elasticsearch-backed taggable cache administration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

IndexOption = typer.Option(None, "--index", "-i", help="Index name (overrides ELASTICCACHE_INDEX_NAME).")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from elasticcache import __version__

        typer.echo(f"elasticcache {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """elasticcache CLI — manage cache entries stored in Elasticsearch."""


# ── Single entries ───────────────────────────────────────────────────────


@app.command("get")
def get_entry(
    identifier: str = typer.Argument(..., help="Cache entry identifier."),
    index: str | None = IndexOption,
) -> None:
    """Print the content of a live entry (exit 1 on a miss)."""
    with handle_errors(), open_backend(index) as backend:
        content = backend.get(identifier)
    if content is None:
        console.print(f"[yellow]No live entry[/yellow] {identifier}")
        raise typer.Exit(code=1)
    typer.echo(content)


@app.command("has")
def has_entry(
    identifier: str = typer.Argument(..., help="Cache entry identifier."),
    index: str | None = IndexOption,
) -> None:
    """Print whether a live entry exists (exit 1 if not)."""
    with handle_errors(), open_backend(index) as backend:
        found = backend.has(identifier)
    typer.echo("true" if found else "false")
    if not found:
        raise typer.Exit(code=1)


@app.command("set")
def set_entry(
    identifier: str = typer.Argument(..., help="Cache entry identifier."),
    content: str = typer.Argument(..., help="Content to store."),
    tags: list[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)."),
    lifetime: int | None = typer.Option(
        None, "--lifetime", "-l", min=0, help="Seconds until expiry, 0 = unlimited."
    ),
    index: str | None = IndexOption,
) -> None:
    """Store an entry."""
    with handle_errors(), open_backend(index) as backend:
        backend.set(identifier, content, tags, lifetime)
    console.print(f"[green]Stored[/green] {identifier}")


@app.command("remove")
def remove_entry(
    identifier: str = typer.Argument(..., help="Cache entry identifier."),
    index: str | None = IndexOption,
) -> None:
    """Remove a live entry."""
    with handle_errors(), open_backend(index) as backend:
        removed = backend.remove(identifier)
    if removed:
        console.print(f"[green]Removed[/green] {identifier}")
    else:
        console.print(f"[yellow]No live entry[/yellow] {identifier}")


# ── Bulk operations ──────────────────────────────────────────────────────


@app.command("flush")
def flush(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    index: str | None = IndexOption,
) -> None:
    """Remove every entry of the cache."""
    if not yes:
        typer.confirm("Remove every cache entry?", abort=True)
    with handle_errors(), open_backend(index) as backend:
        backend.flush()
        name = backend.index
    console.print(f"[green]Flushed[/green] {name}")


@app.command("flush-tag")
def flush_tag(
    tags: list[str] = typer.Argument(..., help="Tag(s) whose entries are removed."),
    index: str | None = IndexOption,
) -> None:
    """Remove every entry carrying one of the given tags."""
    with handle_errors(), open_backend(index) as backend:
        if len(tags) == 1:
            backend.flush_by_tag(tags[0])
        else:
            backend.flush_by_tags(tags)
    console.print(f"[green]Flushed tags[/green] {', '.join(tags)}")


@app.command("gc")
def collect_garbage(index: str | None = IndexOption) -> None:
    """Remove expired entries."""
    with handle_errors(), open_backend(index) as backend:
        backend.collect_garbage()
    console.print("[green]Garbage collected[/green]")


@app.command("tags")
def find_by_tag(
    tag: str = typer.Argument(..., help="Tag to look up."),
    json_out: bool = typer.Option(False, "--json"),
    index: str | None = IndexOption,
) -> None:
    """List identifiers of entries carrying a tag (expired ones included)."""
    with handle_errors(), open_backend(index) as backend:
        identifiers = backend.find_identifiers_by_tag(tag)
    if json_out:
        print_json(identifiers)
    else:
        print_lines(identifiers)


# ── Configuration ────────────────────────────────────────────────────────


@app.command("config")
def show_config(json_out: bool = typer.Option(False, "--json")) -> None:
    """Show the effective settings."""
    settings = load_settings()
    data = settings.model_dump(mode="json")
    data["url"] = settings.url
    if json_out:
        print_json(data)
    else:
        print_dict(data, title="elasticcache settings")
