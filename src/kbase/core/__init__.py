"""Core import logic: parsing, mapping and validation."""

from kbase.core.errors import BulkImportError, FormatError, PersistenceError, UnavailableError
from kbase.core.mapping import index_entries, records_to_entries, rows_to_entries
from kbase.core.parsing import parse_csv, parse_json
from kbase.core.validation import EntryValidator, ValidationIssue, validate_entries

__all__ = [
    "BulkImportError",
    "EntryValidator",
    "FormatError",
    "PersistenceError",
    "UnavailableError",
    "ValidationIssue",
    "index_entries",
    "parse_csv",
    "parse_json",
    "records_to_entries",
    "rows_to_entries",
    "validate_entries",
]
