"""Parsers for bulk input: comma-delimited text and JSON arrays.

The CSV parser is intentionally naive. Unquoted fields end at the next comma,
so a comma inside an unquoted field misaligns the columns that follow it. A
field that opens with a double quote runs to its closing quote (doubled
quotes inside it are literal), which is how the CSV exporter writes every
field. A quote that is never closed is treated as ordinary text.
"""

import json
from typing import Any

from kbase.core.errors import FormatError

DELIMITER = ","
QUOTE = '"'


def _quoted_end(line: str, start: int) -> int:
    """Index just past the quote closing the field opened at ``start``, or -1."""
    i = start + 1
    while i < len(line):
        if line[i] == QUOTE:
            if line[i + 1 : i + 2] == QUOTE:
                i += 2
                continue
            return i + 1
        i += 1
    return -1


def split_fields(line: str) -> list[str]:
    """Split one line into raw fields, keeping quoted commas inside their field."""
    fields = []
    start = 0

    while True:
        scan_from = start
        first = start
        while first < len(line) and line[first] in " \t":
            first += 1
        if line[first : first + 1] == QUOTE:
            closed_at = _quoted_end(line, first)
            if closed_at != -1:
                scan_from = closed_at

        end = line.find(DELIMITER, scan_from)
        if end == -1:
            fields.append(line[start:])
            return fields

        fields.append(line[start:end])
        start = end + 1


def _unwrap(field: str) -> str:
    """Strip surrounding whitespace and one pair of enclosing quotes."""
    field = field.strip()
    if len(field) >= 2 and field[0] == QUOTE and field[-1] == QUOTE:
        return field[1:-1].replace(QUOTE * 2, QUOTE)
    return field


def parse_csv(content: str) -> list[dict[str, str]]:
    """Parse delimited text into header-keyed rows.

    Args:
        content: Raw text; the first non-blank line is the header

    Returns:
        One mapping per data row, in input order. Missing trailing fields
        are empty strings; extra fields are dropped.

    Raises:
        FormatError: If there is no header or no data row
    """
    lines = [line for line in content.split("\n") if line.strip()]
    if len(lines) < 2:
        raise FormatError("CSV must have at least a header row and one data row")

    headers = [_unwrap(h) for h in split_fields(lines[0])]
    rows: list[dict[str, str]] = []

    for line in lines[1:]:
        values = [_unwrap(v) for v in split_fields(line)]
        row = {}
        for j, header in enumerate(headers):
            row[header] = values[j] if j < len(values) else ""
        rows.append(row)

    return rows


def parse_json(content: str) -> list[Any]:
    """Parse a JSON array of records without inspecting the records.

    Raises:
        FormatError: If the text is not JSON, nests too deeply to decode, or
            is not a top-level array
    """
    try:
        data = json.loads(content)
    except (ValueError, RecursionError) as e:
        raise FormatError(f"Invalid JSON: {e}", original_error=e) from e

    if not isinstance(data, list):
        raise FormatError("JSON must be an array of entries")

    return data
