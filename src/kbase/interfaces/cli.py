"""Command-line interface for the kbase knowledge base.

Commands:
- import: Bulk import entries from a CSV or JSON file
- export: Export an owner's entries as CSV or JSON
- template: Print an example import file
- upload: Store a single file as a document entry
- entries: List an owner's entries
- add: Add a single entry
- show: Show one entry in full
- search: Find entries by text or type
- update: Change an entry's title, content, url or metadata
- stats: Summarize an owner's entries
- delete: Delete one entry
"""

import asyncio
import json
import mimetypes
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from kbase.config.loader import ConfigError, get_default_config_path, load_config
from kbase.config.schema import AppConfig
from kbase.entities import Entry, EntryType, ImportResult, StoredEntry
from kbase.observability.logging import configure_from_config, get_logger
from kbase.pipelines.bulk_import import BulkImportService
from kbase.service.knowledge_base import KnowledgeBaseError, KnowledgeBaseService
from kbase.service.stores import initialize_store
from kbase.storage import EntryStore, StorageError

app = typer.Typer(
    name="kbase",
    help="Knowledge base bulk import/export",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


class DataFormat(str, Enum):
    """Bulk data formats."""

    CSV = "csv"
    JSON = "json"


async def _open_store(config: AppConfig) -> EntryStore:
    """Initialize the configured store or exit."""
    try:
        return await initialize_store(config)
    except StorageError as e:
        console.print(f"[red]Error initializing store: {e.message}[/red]")
        raise typer.Exit(1)


def _knowledge_base(store: EntryStore, config: AppConfig) -> KnowledgeBaseService:
    return KnowledgeBaseService(store, config.upload, max_title_length=config.bulk_import.max_title_length)


def _parse_entry_id(entry_id: str) -> UUID:
    try:
        return UUID(entry_id)
    except ValueError:
        console.print(f"[red]Invalid entry id: {entry_id}[/red]")
        raise typer.Exit(1)


def _parse_metadata(metadata: Optional[str]) -> Optional[dict[str, Any]]:
    """Decode a --metadata option; must be a JSON object."""
    if metadata is None:
        return None
    try:
        value = json.loads(metadata)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid metadata: {e.msg}[/red]")
        raise typer.Exit(1)
    if not isinstance(value, dict):
        console.print("[red]Invalid metadata: must be a JSON object[/red]")
        raise typer.Exit(1)
    return value


def _print_entries(items: list[StoredEntry], title: str) -> None:
    if not items:
        console.print("[yellow]No entries found[/yellow]")
        return

    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Created")
    for entry in items:
        table.add_row(str(entry.id), entry.type, entry.title, entry.created_at.strftime("%Y-%m-%d %H:%M"))
    console.print(table)


def _detect_format(path: Path, data_format: Optional[DataFormat]) -> DataFormat:
    if data_format is not None:
        return data_format
    if path.suffix.lower() == ".json":
        return DataFormat.JSON
    return DataFormat.CSV


def _print_import_result(result: ImportResult) -> None:
    table = Table(title="Import summary")
    table.add_column("Total", justify="right")
    table.add_column("Imported", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_row(str(result.total_rows), str(result.imported_rows), str(result.skipped_rows))
    console.print(table)

    if result.errors:
        errors = Table(title="Row errors")
        errors.add_column("Row", justify="right")
        errors.add_column("Kind")
        errors.add_column("Error", style="red")
        for error in result.errors:
            errors.add_row(str(error.row_index), error.kind.value, error.error)
        console.print(errors)

    if result.success:
        console.print("[green]Import completed[/green]")
    else:
        console.print("[red]Import did not complete cleanly[/red]")


@app.command("import")
def import_(
    path: Path = typer.Argument(..., help="CSV or JSON file to import"),
    data_format: Optional[DataFormat] = typer.Option(None, "--format", "-f", help="Input format (default: from file extension)"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Bulk import entries from a file."""
    asyncio.run(_import_async(path, data_format, owner, config_file))


async def _import_async(
    path: Path,
    data_format: Optional[DataFormat],
    owner: Optional[int],
    config_file: Optional[Path],
):
    """Async implementation of import command."""
    config = _load_config(config_file)

    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        console.print(f"[red]Cannot import {path}: file is not UTF-8 text[/red]")
        raise typer.Exit(1)
    owner_id = owner if owner is not None else config.default_owner
    data_format = _detect_format(path, data_format)

    store = await _open_store(config)
    try:
        service = BulkImportService(store, config.bulk_import)
        if data_format is DataFormat.JSON:
            result = await service.import_from_json(owner_id, content)
        else:
            result = await service.import_from_csv(owner_id, content)
    finally:
        await store.close()

    logger.info("cli_import_finished", path=str(path), owner_id=owner_id, success=result.success)
    _print_import_result(result)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def export(
    data_format: DataFormat = typer.Option(DataFormat.CSV, "--format", "-f", help="Output format"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    output: Optional[Path] = typer.Option(None, "--output", help="Write to file instead of stdout"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Export an owner's entries."""
    asyncio.run(_export_async(data_format, owner, output, config_file))


async def _export_async(
    data_format: DataFormat,
    owner: Optional[int],
    output: Optional[Path],
    config_file: Optional[Path],
):
    """Async implementation of export command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner

    store = await _open_store(config)
    try:
        service = BulkImportService(store, config.bulk_import)
        if data_format is DataFormat.JSON:
            text = await service.export_as_json(owner_id)
        else:
            text = await service.export_as_csv(owner_id)
    finally:
        await store.close()

    _write_output(text, output)


@app.command()
def template(
    data_format: DataFormat = typer.Option(DataFormat.CSV, "--format", "-f", help="Template format"),
    output: Optional[Path] = typer.Option(None, "--output", help="Write to file instead of stdout"),
):
    """Print an example import file."""
    service = BulkImportService(store=None)
    if data_format is DataFormat.JSON:
        text = service.generate_json_template()
    else:
        text = service.generate_csv_template()
    _write_output(text, output)


def _write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(text, nl=not text.endswith("\n"))
        return

    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Wrote {output}[/green]")


@app.command()
def upload(
    path: Path = typer.Argument(..., help="File to upload"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    bot_id: Optional[int] = typer.Option(None, "--bot-id", help="Bot the file trains"),
    file_type: Optional[str] = typer.Option(None, "--type", help="MIME type (default: guessed from name)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Upload a file as a document entry."""
    asyncio.run(_upload_async(path, owner, bot_id, file_type, config_file))


async def _upload_async(
    path: Path,
    owner: Optional[int],
    bot_id: Optional[int],
    file_type: Optional[str],
    config_file: Optional[Path],
):
    """Async implementation of upload command."""
    config = _load_config(config_file)

    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    owner_id = owner if owner is not None else config.default_owner
    mime_type = file_type or mimetypes.guess_type(path.name)[0] or "text/plain"

    store = await _open_store(config)
    try:
        service = _knowledge_base(store, config)
        result = await service.upload_file(
            owner_id=owner_id,
            file_name=path.name,
            file_type=mime_type,
            file_size=path.stat().st_size,
            file_content=path.read_text(encoding="utf-8", errors="replace"),
            bot_id=bot_id,
        )
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    console.print(f"[green]Uploaded {result.file_name} as {result.entry_id}[/green]")


@app.command()
def entries(
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    bot_id: Optional[int] = typer.Option(None, "--bot-id", help="Only entries for this bot"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """List an owner's entries."""
    asyncio.run(_entries_async(owner, bot_id, config_file))


async def _entries_async(owner: Optional[int], bot_id: Optional[int], config_file: Optional[Path]):
    """Async implementation of entries command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner

    store = await _open_store(config)
    try:
        service = _knowledge_base(store, config)
        items = await service.list_entries(owner_id, bot_id)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    _print_entries(items, f"Entries for owner {owner_id}")


@app.command()
def add(
    entry_type: str = typer.Option(..., "--type", "-t", help=f"One of: {', '.join(EntryType.values())}"),
    title: str = typer.Option(..., "--title", help="Entry title"),
    content: str = typer.Option(..., "--content", help="Entry content"),
    url: Optional[str] = typer.Option(None, "--url", help="Related link"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="JSON object"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Add a single entry."""
    entry = Entry(type=entry_type, title=title, content=content, url=url or None, metadata=_parse_metadata(metadata))
    asyncio.run(_add_async(entry, owner, config_file))


async def _add_async(entry: Entry, owner: Optional[int], config_file: Optional[Path]):
    """Async implementation of add command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner

    store = await _open_store(config)
    try:
        stored = await _knowledge_base(store, config).add_entry(owner_id, entry)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    console.print(f"[green]Added {stored.title} as {stored.id}[/green]")


@app.command()
def show(
    entry_id: str = typer.Argument(..., help="Entry id"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show one entry in full."""
    asyncio.run(_show_async(entry_id, owner, config_file))


async def _show_async(entry_id: str, owner: Optional[int], config_file: Optional[Path]):
    """Async implementation of show command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner
    entry_uuid = _parse_entry_id(entry_id)

    store = await _open_store(config)
    try:
        entry = await _knowledge_base(store, config).get_entry(owner_id, entry_uuid)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    if entry is None:
        console.print(f"[yellow]Entry {entry_id} not found[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold]{entry.title}[/bold] ({entry.type})")
    console.print(f"ID: {entry.id}")
    console.print(f"Created: {entry.created_at.isoformat()}")
    if entry.url:
        console.print(f"URL: {entry.url}")
    if entry.metadata:
        console.print(f"Metadata: {entry.metadata}", markup=False)
    console.print()
    console.print(entry.content, markup=False)


@app.command()
def search(
    query: Optional[str] = typer.Argument(None, help="Text to find in titles and content"),
    entry_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only entries of this type"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Search an owner's entries by text and/or type."""
    asyncio.run(_search_async(query, entry_type, owner, config_file))


async def _search_async(
    query: Optional[str],
    entry_type: Optional[str],
    owner: Optional[int],
    config_file: Optional[Path],
):
    """Async implementation of search command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner

    store = await _open_store(config)
    try:
        items = await _knowledge_base(store, config).search_entries(owner_id, query, entry_type)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    _print_entries(items, f"{len(items)} matching entries")


@app.command()
def update(
    entry_id: str = typer.Argument(..., help="Entry id"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", help="New content"),
    url: Optional[str] = typer.Option(None, "--url", help="New link (empty string clears it)"),
    metadata: Optional[str] = typer.Option(None, "--metadata", help="Replacement JSON object"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Change an entry's title, content, url or metadata."""
    changes = {"title": title, "content": content, "url": url, "metadata": _parse_metadata(metadata)}
    asyncio.run(_update_async(entry_id, changes, owner, config_file))


async def _update_async(
    entry_id: str,
    changes: dict[str, Any],
    owner: Optional[int],
    config_file: Optional[Path],
):
    """Async implementation of update command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner
    entry_uuid = _parse_entry_id(entry_id)

    if all(value is None for value in changes.values()):
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(1)

    store = await _open_store(config)
    try:
        entry = await _knowledge_base(store, config).update_entry(owner_id, entry_uuid, **changes)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    console.print(f"[green]Updated entry {entry.id}[/green]")


@app.command()
def stats(
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    bot_id: Optional[int] = typer.Option(None, "--bot-id", help="Only entries for this bot"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Summarize an owner's entries."""
    asyncio.run(_stats_async(owner, bot_id, config_file))


async def _stats_async(owner: Optional[int], bot_id: Optional[int], config_file: Optional[Path]):
    """Async implementation of stats command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner

    store = await _open_store(config)
    try:
        service = _knowledge_base(store, config)
        summary = await service.get_stats(owner_id, bot_id)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    console.print(f"Total entries: {summary.total_entries}")
    console.print(f"Storage used: {summary.storage_used} bytes")
    console.print(f"Last updated: {summary.last_updated.isoformat() if summary.last_updated else '-'}")
    for entry_type, count in sorted(summary.entries_by_type.items()):
        console.print(f"  {entry_type}: {count}")


@app.command()
def delete(
    entry_id: str = typer.Argument(..., help="Entry id"),
    owner: Optional[int] = typer.Option(None, "--owner", "-o", help="Owner id (defaults to config default_owner)"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Delete an entry."""
    asyncio.run(_delete_async(entry_id, owner, config_file))


async def _delete_async(entry_id: str, owner: Optional[int], config_file: Optional[Path]):
    """Async implementation of delete command."""
    config = _load_config(config_file)
    owner_id = owner if owner is not None else config.default_owner

    entry_uuid = _parse_entry_id(entry_id)

    store = await _open_store(config)
    try:
        service = _knowledge_base(store, config)
        deleted = await service.delete_entry(owner_id, entry_uuid)
    except KnowledgeBaseError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        await store.close()

    if not deleted:
        console.print(f"[yellow]Entry {entry_id} not found[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted entry {entry_id}[/green]")


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load configuration and setup logging."""
    if config_file is None:
        config_file = get_default_config_path()

    try:
        config = load_config(config_file)
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)
    configure_from_config(config.logging, json_logs=config.json_logs)

    return config


if __name__ == "__main__":
    app()
