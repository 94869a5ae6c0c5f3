"""Lexicon store CLI.

Opens the lexicon database from the best available source, imports and
browses entries, exports the image, and runs the companion disk server.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer
import uvicorn
from pydantic import ValidationError

from lexistore.config import get_settings
from lexistore.models.entry import Entry
from lexistore.services.factory import create_database_service
from lexistore.services.local_cache import write_atomic

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    logger_factory=lambda name: structlog.PrintLogger(file=sys.stderr),
    wrapper_class=structlog.BoundLogger,
    context_class=dict,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="lexistore",
    help="""Manage the digitized Hebrew lexicon database.

Examples:

  # Start the disk server that mirrors lexicon.sqlite
  uv run lexistore serve --port 4000

  # Show where the database was loaded from
  uv run lexistore status

  # Import extracted entries
  uv run lexistore add page_0042.json

  # Browse by letter
  uv run lexistore letter א""",
    rich_markup_mode="markdown",
)


def _format_entry(entry: Entry) -> str:
    parts = [entry.hebrew_word]
    if entry.hebrew_consonantal:
        parts.append(f"({entry.hebrew_consonantal})")
    if entry.part_of_speech:
        parts.append(entry.part_of_speech)
    if entry.strongs_numbers:
        parts.append(f"[{entry.strongs_numbers}]")
    parts.append(f"- {entry.definition}")
    return " ".join(parts)


@app.command()
def serve(
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to serve on (default from settings)",
    ),
    host: Optional[str] = typer.Option(
        None,
        "--host",
        "-h",
        help="Host to serve on (default from settings)",
    ),
    lexicon_path: Optional[str] = typer.Option(
        None,
        "--lexicon-path",
        "-l",
        help="File to store lexicon.sqlite in (default: public/lexicon.sqlite)",
    ),
) -> None:
    """Start the disk server that stores lexicon.sqlite."""
    from lexistore.server import create_app

    settings = get_settings()
    path = Path(lexicon_path) if lexicon_path else settings.lexicon_path
    bind_host = host or settings.server_host
    bind_port = port or settings.server_port

    logger.info("starting_disk_server", host=bind_host, port=bind_port, lexicon_path=str(path))
    uvicorn.run(
        create_app(lexicon_path=path, max_upload_bytes=settings.max_upload_bytes),
        host=bind_host,
        port=bind_port,
    )


@app.command()
def status() -> None:
    """Open the database and report its source and size."""

    async def run() -> tuple[str, bool, int]:
        async with create_database_service() as service:
            count = await service.count_entries()
            return service.load_source.value, service.server_available, count

    source, server_available, count = asyncio.run(run())
    typer.echo(f"Source: {source}")
    typer.echo(f"Server: {'reachable' if server_available else 'unreachable'}")
    typer.echo(f"Entries: {count}")


@app.command()
def add(
    json_file: str = typer.Argument(
        ...,
        help="JSON file holding a list of entries (camelCase fields)",
    ),
) -> None:
    """Import extracted entries from a JSON file."""
    path = Path(json_file)
    if not path.exists():
        logger.error("file_not_found", path=str(path))
        raise typer.Exit(1)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        entries = [Entry.model_validate(item) for item in raw]
    except (json.JSONDecodeError, TypeError, ValidationError) as e:
        logger.error("invalid_entry_file", path=str(path), error=str(e))
        raise typer.Exit(1)

    async def run() -> int:
        async with create_database_service() as service:
            stored = await service.add_entries(entries)
            return len(stored)

    typer.echo(f"Added {asyncio.run(run())} entries")


@app.command()
def letter(
    value: str = typer.Argument(
        ...,
        help="Hebrew letter to filter headwords by",
    ),
) -> None:
    """List entries whose headword starts with a letter."""

    async def run() -> list[Entry]:
        async with create_database_service() as service:
            return await service.get_entries_by_letter(value)

    entries = asyncio.run(run())
    for entry in entries:
        typer.echo(_format_entry(entry))
    typer.echo(f"{len(entries)} entries")


@app.command()
def export(
    output: str = typer.Argument(
        ...,
        help="Destination file for the serialized database",
    ),
) -> None:
    """Write the current database image to a file."""

    async def run() -> int:
        async with create_database_service() as service:
            blob = service.export_image()
        await write_atomic(Path(output), blob)
        return len(blob)

    size = asyncio.run(run())
    typer.echo(f"Wrote {size} bytes to {output}")


@app.command()
def reset() -> None:
    """Clear the local cache. The disk server's file is kept."""

    async def run() -> None:
        service = create_database_service()
        try:
            await service.reset_database()
        finally:
            await service.close()

    asyncio.run(run())
    typer.echo("Local cache cleared")


@app.command()
def version() -> None:
    """Show version information."""
    from lexistore import __version__

    typer.echo(f"lexistore {__version__}")
