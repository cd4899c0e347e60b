"""ImportResult entity - the per-call outcome of a bulk import."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorKind(str, Enum):
    """Closed set of failure kinds a row error can report."""

    FORMAT = "format"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    UNAVAILABLE = "unavailable"


class RowError(BaseModel):
    """One failure, keyed by the row's position in the original input."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    row_index: int = Field(..., ge=0, alias="rowIndex")
    error: str
    kind: ErrorKind = ErrorKind.VALIDATION


class ImportResult(BaseModel):
    """Outcome of one import call.

    Serialized with camelCase keys (``totalRows``, ``rowIndex``, ...) via
    ``to_dict``. Not persisted.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    total_rows: int = Field(..., ge=0, alias="totalRows")
    imported_rows: int = Field(0, ge=0, alias="importedRows")
    skipped_rows: int = Field(0, ge=0, alias="skippedRows")
    errors: list[RowError] = Field(default_factory=list)

    @model_validator(mode="after")
    def rows_accounted_for(self) -> "ImportResult":
        if self.imported_rows + self.skipped_rows != self.total_rows:
            raise ValueError(
                "total_rows must equal imported_rows + skipped_rows "
                f"({self.total_rows} != {self.imported_rows} + {self.skipped_rows})"
            )
        return self

    @classmethod
    def format_failure(cls, message: str) -> "ImportResult":
        """Degenerate result for input that could not be parsed at all."""
        return cls(
            success=False,
            total_rows=0,
            errors=[RowError(row_index=0, error=message, kind=ErrorKind.FORMAT)],
        )

    @classmethod
    def unavailable(cls, total_rows: int, message: str = "Database not initialized") -> "ImportResult":
        """Degenerate result for a batch that never reached storage."""
        return cls(
            success=False,
            total_rows=total_rows,
            skipped_rows=total_rows,
            errors=[RowError(row_index=0, error=message, kind=ErrorKind.UNAVAILABLE)],
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
