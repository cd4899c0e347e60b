"""Unit tests for the kbase CLI."""

import json
import re

import pytest
from typer.testing import CliRunner

from kbase.interfaces.cli import app
from kbase.pipelines.bulk_import import BulkImportService

runner = CliRunner()

UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Config pointing at a throwaway SQLite database."""
    monkeypatch.setenv("KBASE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("KBASE_STORAGE__STORE_TYPE", raising=False)
    monkeypatch.delenv("KBASE_STORAGE__CONNECTION_STRING", raising=False)

    path = tmp_path / "config.toml"
    path.write_text(
        f"""
default_owner = 1

[storage]
store_type = "sqlite"
connection_string = "sqlite:///{tmp_path / 'kb.db'}"

[logging]
level = "WARNING"
"""
    )
    return path


def _invoke(*args):
    return runner.invoke(app, [str(arg) for arg in args])


class TestTemplateCommand:
    """Test the template command."""

    def test_csv_template(self):
        result = _invoke("template")

        assert result.exit_code == 0
        assert result.output == BulkImportService(store=None).generate_csv_template()

    def test_json_template_to_file(self, tmp_path):
        target = tmp_path / "template.json"

        result = _invoke("template", "--format", "json", "--output", target)

        assert result.exit_code == 0
        assert json.loads(target.read_text()) == json.loads(BulkImportService(store=None).generate_json_template())


class TestImportExport:
    """Test import and export through the CLI."""

    def test_import_then_export(self, tmp_path, config_file):
        """Test imported template rows come back out of export."""
        source = tmp_path / "entries.csv"
        source.write_text(BulkImportService(store=None).generate_csv_template())

        result = _invoke("import", source, "--config", config_file)
        assert result.exit_code == 0
        assert "Import completed" in result.output

        result = _invoke("export", "--format", "json", "--config", config_file)
        assert result.exit_code == 0
        records = json.loads(result.output)
        assert [r["title"] for r in records] == ["My Music Website", "My Autobiography", "Gospel Album"]

    def test_json_format_detected_from_extension(self, tmp_path, config_file):
        source = tmp_path / "entries.json"
        source.write_text(json.dumps([{"type": "blog", "title": "Post", "content": "Body"}]))

        result = _invoke("import", source, "--config", config_file)

        assert result.exit_code == 0

        result = _invoke("export", "--config", config_file)
        assert result.output.splitlines()[1] == '"blog","Post","Body","",""'

    def test_validation_errors_exit_nonzero(self, tmp_path, config_file):
        """Test partial imports report errors and fail the command."""
        source = tmp_path / "entries.csv"
        source.write_text("type,title,content\nblog,Good,Body\nblog,,Body\n")

        result = _invoke("import", source, "--config", config_file)

        assert result.exit_code == 1
        assert "Missing or empty title" in result.output

        result = _invoke("export", "--format", "json", "--config", config_file)
        assert [r["title"] for r in json.loads(result.output)] == ["Good"]

    def test_unparseable_file(self, tmp_path, config_file):
        source = tmp_path / "entries.csv"
        source.write_text("type,title,content\n")

        result = _invoke("import", source, "--config", config_file)

        assert result.exit_code == 1
        assert "CSV parsing failed" in result.output

    def test_missing_file(self, tmp_path, config_file):
        result = _invoke("import", tmp_path / "absent.csv", "--config", config_file)

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_export_empty(self, config_file):
        result = _invoke("export", "--format", "json", "--config", config_file)

        assert result.exit_code == 0
        assert json.loads(result.output) == []


class TestKnowledgeBaseCommands:
    """Test upload, entries, stats and delete."""

    def test_upload_list_stats_delete(self, tmp_path, config_file):
        document = tmp_path / "notes.txt"
        document.write_text("hello world")

        result = _invoke("upload", document, "--bot-id", 3, "--config", config_file)
        assert result.exit_code == 0
        entry_id = UUID_PATTERN.search(result.output).group(0)

        result = _invoke("entries", "--bot-id", 3, "--config", config_file)
        assert result.exit_code == 0
        assert "document" in result.output

        result = _invoke("stats", "--config", config_file)
        assert result.exit_code == 0
        assert "Total entries: 1" in result.output
        assert "Storage used: 11 bytes" in result.output

        result = _invoke("delete", entry_id, "--owner", 2, "--config", config_file)
        assert result.exit_code == 1

        result = _invoke("delete", entry_id, "--config", config_file)
        assert result.exit_code == 0

        result = _invoke("entries", "--config", config_file)
        assert "No entries found" in result.output

    def test_upload_over_limit(self, tmp_path, config_file):
        config_file.write_text(config_file.read_text() + "\n[upload]\nmax_file_size = 4\n")
        document = tmp_path / "notes.txt"
        document.write_text("hello world")

        result = _invoke("upload", document, "--config", config_file)

        assert result.exit_code == 1
        assert "File size exceeds" in result.output

    def test_delete_invalid_id(self, config_file):
        result = _invoke("delete", "not-a-uuid", "--config", config_file)

        assert result.exit_code == 1
        assert "Invalid entry id" in result.output

    def test_add_show_search_update(self, config_file):
        result = _invoke(
            "add", "--type", "book", "--title", "Memoir", "--content", "My life",
            "--metadata", '{"author": "Me"}', "--config", config_file,
        )
        assert result.exit_code == 0
        entry_id = UUID_PATTERN.search(result.output).group(0)

        result = _invoke("update", entry_id, "--content", "My whole life", "--config", config_file)
        assert result.exit_code == 0

        result = _invoke("show", entry_id, "--config", config_file)
        assert result.exit_code == 0
        assert "Memoir (book)" in result.output
        assert "My whole life" in result.output
        assert '{"author": "Me"}' in result.output

        result = _invoke("search", "whole", "--type", "book", "--config", config_file)
        assert result.exit_code == 0
        assert "1 matching entries" in result.output

        result = _invoke("search", "absent", "--config", config_file)
        assert "No entries found" in result.output

    def test_add_rejects_invalid_entry(self, config_file):
        result = _invoke("add", "--type", "bogus", "--title", "T", "--content", "C", "--config", config_file)

        assert result.exit_code == 1
        assert "Invalid type: bogus" in result.output

    def test_add_rejects_non_object_metadata(self, config_file):
        result = _invoke(
            "add", "--type", "blog", "--title", "T", "--content", "C", "--metadata", "[1]", "--config", config_file
        )

        assert result.exit_code == 1
        assert "must be a JSON object" in result.output

    def test_show_missing_entry(self, config_file):
        result = _invoke("show", "00000000-0000-0000-0000-000000000000", "--config", config_file)

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_update_without_changes(self, config_file):
        result = _invoke("update", "00000000-0000-0000-0000-000000000000", "--config", config_file)

        assert result.exit_code == 1
        assert "Nothing to update" in result.output


class TestInputErrors:
    """Test unreadable inputs end with a clean error."""

    def test_non_utf8_import_file(self, tmp_path, config_file):
        source = tmp_path / "entries.csv"
        source.write_bytes(b"type,title,content\nblog,\xff\xfe,Body\n")

        result = _invoke("import", source, "--config", config_file)

        assert result.exit_code == 1
        assert "file is not UTF-8 text" in " ".join(result.output.split())
        assert not isinstance(result.exception, UnicodeDecodeError)

    def test_broken_config_file(self, tmp_path, config_file):
        config_file.write_text("[storage\n")

        result = _invoke("entries", "--config", config_file)

        assert result.exit_code == 1
        assert "Configuration error" in result.output
