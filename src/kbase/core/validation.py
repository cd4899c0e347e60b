"""Per-entry validation rules for bulk import."""

from collections.abc import Sequence
from dataclasses import dataclass

from kbase.entities import Entry, EntryType, IndexedEntry

MAX_TITLE_LENGTH = 255


@dataclass(frozen=True)
class ValidationIssue:
    """A single rule violation on the entry at ``index``."""

    index: int
    error: str


class EntryValidator:
    """Checks every entry against every rule.

    Rules are independent: an entry breaking two rules yields two issues with
    the same index. Checks run in this order for each entry: missing type,
    unknown type, missing or blank title, missing or blank content, title too
    long, undecodable metadata.
    """

    def __init__(self, max_title_length: int = MAX_TITLE_LENGTH):
        self.max_title_length = max_title_length
        self.valid_types = EntryType.values()

    def validate(self, entries: Sequence[IndexedEntry]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for item in entries:
            issues.extend(
                ValidationIssue(index=item.index, error=error) for error in self.check(item)
            )
        return issues

    def check(self, item: IndexedEntry) -> list[str]:
        """Return every rule violation for one entry, in rule order."""
        errors = self.check_type(item.entry) + self.check_text(item.entry)
        if item.metadata_error:
            errors.append(item.metadata_error)
        return errors

    def check_type(self, entry: Entry) -> list[str]:
        if not entry.type:
            return ["Missing type field"]
        if entry.type not in self.valid_types:
            return [f"Invalid type: {entry.type}. Must be one of: {', '.join(self.valid_types)}"]
        return []

    def check_text(self, entry: Entry) -> list[str]:
        """Title and content rules only."""
        errors = []

        if not entry.title or not entry.title.strip():
            errors.append("Missing or empty title")

        if not entry.content or not entry.content.strip():
            errors.append("Missing or empty content")

        if entry.title and len(entry.title) > self.max_title_length:
            errors.append(f"Title too long (max {self.max_title_length} characters)")

        return errors


def validate_entries(
    entries: Sequence[IndexedEntry], max_title_length: int = MAX_TITLE_LENGTH
) -> list[ValidationIssue]:
    """Validate entries with the default rule set."""
    return EntryValidator(max_title_length).validate(entries)
