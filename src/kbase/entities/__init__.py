"""Entities - Domain models for the knowledge base import/export system.

This module contains pure domain entities without business logic:
- Entry: A knowledge-base record read from bulk input
- IndexedEntry: An entry tagged with its position in that input
- StoredEntry: An entry owned by a user, as persisted
- ImportResult: The outcome of one import call
"""

from kbase.entities.entry import Entry, EntryType, IndexedEntry, StoredEntry
from kbase.entities.import_result import ErrorKind, ImportResult, RowError

__all__ = [
    "Entry",
    "EntryType",
    "ErrorKind",
    "ImportResult",
    "IndexedEntry",
    "RowError",
    "StoredEntry",
]
