"""Normalize parsed rows and records into index-tagged entries.

Mapping never rejects anything. Missing or malformed values are carried
through (or recorded as a metadata error) so the validator can report them
against the row's original position.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from kbase.entities import Entry, IndexedEntry

DEFAULT_TYPE = "website"


def _decode_metadata(raw: Optional[str]) -> tuple[Optional[dict[str, Any]], Optional[str]]:
    """Decode a CSV metadata cell. Returns (metadata, error)."""
    if not raw:
        return None, None

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        return None, f"Invalid metadata: {e.msg}"

    if not isinstance(value, dict):
        return None, "Invalid metadata: must be a JSON object"
    return value, None


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def row_to_entry(index: int, row: Mapping[str, str], default_type: str = DEFAULT_TYPE) -> IndexedEntry:
    """Build an entry from one CSV row."""
    metadata, metadata_error = _decode_metadata(row.get("metadata"))
    entry = Entry(
        type=row.get("type") or default_type,
        title=row.get("title") or "",
        content=row.get("content") or "",
        url=row.get("url") or None,
        metadata=metadata,
    )
    return IndexedEntry(index=index, entry=entry, metadata_error=metadata_error)


def rows_to_entries(rows: Sequence[Mapping[str, str]], default_type: str = DEFAULT_TYPE) -> list[IndexedEntry]:
    return [row_to_entry(i, row, default_type) for i, row in enumerate(rows)]


def record_to_entry(index: int, record: Any) -> IndexedEntry:
    """Build an entry from one JSON record.

    Values of the wrong JSON type count as missing. A record that is not an
    object yields an entry with every field missing.
    """
    if not isinstance(record, Mapping):
        record = {}

    metadata = record.get("metadata")
    metadata_error = None
    if metadata is not None and not isinstance(metadata, dict):
        metadata = None
        metadata_error = "Invalid metadata: must be a JSON object"

    entry = Entry(
        type=_text(record.get("type")),
        title=_text(record.get("title")),
        content=_text(record.get("content")),
        url=_text(record.get("url")),
        metadata=metadata,
    )
    return IndexedEntry(index=index, entry=entry, metadata_error=metadata_error)


def records_to_entries(records: Sequence[Any]) -> list[IndexedEntry]:
    return [record_to_entry(i, record) for i, record in enumerate(records)]


def index_entries(entries: Sequence[Entry]) -> list[IndexedEntry]:
    """Tag already-built entries with their positions."""
    return [IndexedEntry(index=i, entry=entry) for i, entry in enumerate(entries)]
