"""Bulk import/export pipeline for knowledge-base entries.

Why this exists:
- Turns CSV or JSON uploads into stored entries, one row at a time
- Reports exactly which rows were imported and why others were skipped
- Serializes an owner's entries back to CSV or JSON

How to use:
    from kbase.pipelines.bulk_import import BulkImportService

    service = BulkImportService(store)
    result = await service.import_from_csv(owner_id, text)
    print(result.to_dict())

Rows are persisted sequentially in input order with no transaction spanning
the batch: a failure on one row leaves earlier rows in place.
"""

import json
from collections.abc import Sequence
from typing import Any, Optional

from kbase.config.schema import BulkImportConfig
from kbase.core.errors import FormatError, PersistenceError, UnavailableError
from kbase.core.mapping import records_to_entries, rows_to_entries
from kbase.core.parsing import parse_csv, parse_json
from kbase.core.validation import EntryValidator
from kbase.entities import Entry, ErrorKind, ImportResult, IndexedEntry, RowError, StoredEntry
from kbase.observability.logging import get_logger
from kbase.storage.base import EntryStore, StorageError

logger = get_logger(__name__)

EXPORT_FIELDS = ("type", "title", "content", "url", "metadata")

_TEMPLATE_ENTRIES: list[dict[str, Any]] = [
    {
        "type": "website",
        "title": "My Music Website",
        "content": "A website showcasing my music and artist profile",
        "url": "https://example.com",
        "metadata": {"category": "music"},
    },
    {
        "type": "book",
        "title": "My Autobiography",
        "content": "The story of my life and journey in music",
        "url": "https://amazon.com/...",
        "metadata": {"author": "Me", "year": 2024},
    },
    {
        "type": "music",
        "title": "Gospel Album",
        "content": "My latest gospel music album with 10 tracks",
        "url": "https://spotify.com/...",
        "metadata": {"genre": "gospel", "tracks": 10},
    },
]

# CSV rows are split on every comma, so the CSV template keeps one metadata
# key per row to stay importable as written.
_CSV_TEMPLATE_METADATA = ['{"category":"music"}', '{"author":"Me"}', '{"genre":"gospel"}']


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _export_metadata(entry: StoredEntry) -> dict[str, Any]:
    try:
        return entry.decoded_metadata()
    except ValueError:
        logger.warning("export_metadata_unreadable", entry_id=str(entry.id))
        return {}


class BulkImportService:
    """Imports, exports and templates knowledge-base entries for an owner."""

    def __init__(self, store: Optional[EntryStore], config: Optional[BulkImportConfig] = None):
        """Initialize the service.

        Args:
            store: Entry store; None or an uninitialized store means storage
                is unavailable
            config: Bulk import settings
        """
        self.store = store
        self.config = config or BulkImportConfig()
        self.validator = EntryValidator(max_title_length=self.config.max_title_length)

    def _require_store(self) -> EntryStore:
        if self.store is None or not self.store.is_available:
            raise UnavailableError("Database not initialized")
        return self.store

    async def import_from_csv(self, owner_id: int, content: str) -> ImportResult:
        """Import entries from comma-delimited text with a header row."""
        try:
            rows = parse_csv(content)
        except FormatError as e:
            logger.warning("csv_parse_failed", owner_id=owner_id, error=e.message)
            return ImportResult.format_failure(f"CSV parsing failed: {e.message}")

        entries = rows_to_entries(rows, default_type=self.config.default_type)
        return await self.import_entries(owner_id, entries)

    async def import_from_json(self, owner_id: int, content: str) -> ImportResult:
        """Import entries from a JSON array of records."""
        try:
            records = parse_json(content)
        except FormatError as e:
            logger.warning("json_parse_failed", owner_id=owner_id, error=e.message)
            return ImportResult.format_failure(f"JSON parsing failed: {e.message}")

        entries = records_to_entries(records)
        return await self.import_entries(owner_id, entries)

    async def import_entries(
        self, owner_id: int, entries: Sequence[IndexedEntry] | Sequence[Entry]
    ) -> ImportResult:
        """Validate and persist entries, accounting for every row.

        Every validation issue is reported, and rows with any issue are
        skipped. Valid rows are inserted one at a time; an insert failure is
        reported against that row and counted as skipped.

        Args:
            owner_id: Owner the entries are imported for
            entries: Index-tagged entries, or plain entries tagged by position

        Returns:
            ImportResult; success only when no row was skipped
        """
        indexed = [
            item if isinstance(item, IndexedEntry) else IndexedEntry(index=i, entry=item)
            for i, item in enumerate(entries)
        ]
        total_rows = len(indexed)

        logger.info("import_started", owner_id=owner_id, total_rows=total_rows)

        issues = self.validator.validate(indexed)
        invalid_indices = {issue.index for issue in issues}
        errors = [
            RowError(row_index=issue.index, error=issue.error, kind=ErrorKind.VALIDATION)
            for issue in issues
        ]

        try:
            store = self._require_store()
        except UnavailableError as e:
            logger.error("import_aborted_store_unavailable", owner_id=owner_id, total_rows=total_rows)
            return ImportResult.unavailable(total_rows, e.message)

        imported_rows = 0
        skipped_rows = 0

        for item in indexed:
            if item.index in invalid_indices:
                skipped_rows += 1
                continue

            try:
                await self._persist(store, owner_id, item.entry)
            except PersistenceError as e:
                logger.warning("row_insert_failed", owner_id=owner_id, row_index=item.index, error=e.message)
                errors.append(
                    RowError(
                        row_index=item.index,
                        error=f"Database insert failed: {e.message}",
                        kind=ErrorKind.PERSISTENCE,
                    )
                )
                skipped_rows += 1
                continue

            imported_rows += 1

        logger.info(
            "import_completed",
            owner_id=owner_id,
            total_rows=total_rows,
            imported_rows=imported_rows,
            skipped_rows=skipped_rows,
            error_count=len(errors),
        )

        return ImportResult(
            success=skipped_rows == 0,
            total_rows=total_rows,
            imported_rows=imported_rows,
            skipped_rows=skipped_rows,
            errors=errors,
        )

    async def _persist(self, store: EntryStore, owner_id: int, entry: Entry) -> None:
        try:
            await store.add_entry(StoredEntry.from_entry(owner_id, entry))
        except StorageError as e:
            raise PersistenceError(e.message, original_error=e) from e

    def generate_csv_template(self) -> str:
        """Example CSV: header plus three importable sample rows."""
        lines = [",".join(EXPORT_FIELDS)]
        for example, metadata in zip(_TEMPLATE_ENTRIES, _CSV_TEMPLATE_METADATA):
            lines.append(
                ",".join([example["type"], example["title"], example["content"], example["url"], metadata])
            )
        return "\n".join(lines) + "\n"

    def generate_json_template(self) -> str:
        """Example JSON array with three sample records."""
        return json.dumps(_TEMPLATE_ENTRIES, indent=2)

    async def _owner_entries(self, owner_id: int) -> list[StoredEntry]:
        try:
            store = self._require_store()
        except UnavailableError:
            logger.warning("export_store_unavailable", owner_id=owner_id)
            return []
        return await store.list_entries_by_owner(owner_id)

    async def export_as_csv(self, owner_id: int) -> str:
        """Serialize an owner's entries as fully quoted CSV.

        Returns an empty string when there is nothing to export.
        """
        entries = await self._owner_entries(owner_id)
        if not entries:
            return ""

        lines = [",".join(EXPORT_FIELDS)]
        for entry in entries:
            fields = [entry.type, entry.title, entry.content, entry.url or "", entry.metadata or ""]
            lines.append(",".join(_quote(field) for field in fields))

        logger.info("export_completed", owner_id=owner_id, format="csv", entry_count=len(entries))
        return "\n".join(lines) + "\n"

    async def export_as_json(self, owner_id: int) -> str:
        """Serialize an owner's entries as a JSON array.

        Returns ``"[]"`` when there is nothing to export.
        """
        entries = await self._owner_entries(owner_id)
        if not entries:
            return "[]"

        export_data = []
        for entry in entries:
            record: dict[str, Any] = {
                "type": entry.type,
                "title": entry.title,
                "content": entry.content,
            }
            if entry.url:
                record["url"] = entry.url
            record["metadata"] = _export_metadata(entry)
            export_data.append(record)

        logger.info("export_completed", owner_id=owner_id, format="json", entry_count=len(entries))
        return json.dumps(export_data, indent=2)
