"""Batch- and row-level errors raised inside the import pipeline.

Row-level failures never leave the pipeline as exceptions; they are folded
into ImportResult.errors. Batch-level failures (FormatError, UnavailableError)
are caught at the import boundary and turned into a degenerate ImportResult.
"""

from typing import Optional

from kbase.entities.import_result import ErrorKind


class BulkImportError(Exception):
    """Base exception for the import pipeline."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class FormatError(BulkImportError):
    """Raw input cannot be parsed into the expected shape."""

    kind = ErrorKind.FORMAT


class PersistenceError(BulkImportError):
    """Storage rejected an otherwise valid entry."""

    kind = ErrorKind.PERSISTENCE


class UnavailableError(BulkImportError):
    """No usable entry store for this batch."""

    kind = ErrorKind.UNAVAILABLE
