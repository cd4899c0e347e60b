"""Unit tests for row and record mapping."""

from kbase.core.mapping import (
    index_entries,
    record_to_entry,
    records_to_entries,
    row_to_entry,
    rows_to_entries,
)
from kbase.entities import Entry


class TestRowMapping:
    """Test CSV row to entry mapping."""

    def test_full_row(self):
        """Test every column maps onto the entry."""
        item = row_to_entry(
            3,
            {
                "type": "book",
                "title": "Memoir",
                "content": "My life",
                "url": "https://example.com",
                "metadata": '{"author": "Me"}',
            },
        )

        assert item.index == 3
        assert item.entry == Entry(
            type="book",
            title="Memoir",
            content="My life",
            url="https://example.com",
            metadata={"author": "Me"},
        )
        assert item.metadata_error is None

    def test_defaults(self):
        """Test missing columns fall back to defaults."""
        item = row_to_entry(0, {})

        assert item.entry.type == "website"
        assert item.entry.title == ""
        assert item.entry.content == ""
        assert item.entry.url is None
        assert item.entry.metadata is None

    def test_custom_default_type(self):
        """Test the default type can be overridden."""
        item = row_to_entry(0, {"title": "T"}, default_type="blog")

        assert item.entry.type == "blog"

    def test_empty_url_is_absent(self):
        """Test an empty url cell becomes None."""
        item = row_to_entry(0, {"url": ""})

        assert item.entry.url is None

    def test_invalid_metadata_is_recorded_not_raised(self):
        """Test bad metadata JSON is kept as a row error."""
        item = row_to_entry(1, {"type": "book", "metadata": "{broken"})

        assert item.entry.metadata is None
        assert item.metadata_error.startswith("Invalid metadata: ")

    def test_non_object_metadata_is_recorded(self):
        """Test metadata must decode to an object."""
        item = row_to_entry(0, {"metadata": "[1, 2]"})

        assert item.metadata_error == "Invalid metadata: must be a JSON object"

    def test_rows_keep_their_positions(self):
        """Test indices follow input order."""
        items = rows_to_entries([{"title": "a"}, {"title": "b"}])

        assert [(i.index, i.entry.title) for i in items] == [(0, "a"), (1, "b")]


class TestRecordMapping:
    """Test JSON record to entry mapping."""

    def test_record_without_defaults(self):
        """Test JSON records get no default type."""
        item = record_to_entry(0, {"title": "T", "content": "C"})

        assert item.entry.type is None

    def test_wrong_value_types_count_as_missing(self):
        """Test non-string values are dropped for the validator to report."""
        item = record_to_entry(0, {"type": 7, "title": ["x"], "content": None, "url": 3})

        assert item.entry == Entry()

    def test_non_object_record(self):
        """Test a non-object record yields an empty entry."""
        item = record_to_entry(2, "just text")

        assert item.index == 2
        assert item.entry == Entry()

    def test_metadata_object_passes_through(self):
        """Test object metadata is kept."""
        item = record_to_entry(0, {"metadata": {"genre": "gospel", "tracks": 10}})

        assert item.entry.metadata == {"genre": "gospel", "tracks": 10}
        assert item.metadata_error is None

    def test_non_object_metadata_is_recorded(self):
        """Test scalar metadata is rejected as a row error."""
        item = record_to_entry(0, {"metadata": "text"})

        assert item.entry.metadata is None
        assert item.metadata_error == "Invalid metadata: must be a JSON object"

    def test_records_keep_their_positions(self):
        items = records_to_entries([{}, {}, {}])

        assert [i.index for i in items] == [0, 1, 2]


def test_index_entries():
    """Test plain entries are tagged by position."""
    items = index_entries([Entry(title="a"), Entry(title="b")])

    assert [(i.index, i.entry.title) for i in items] == [(0, "a"), (1, "b")]
