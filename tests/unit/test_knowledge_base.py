"""Unit tests for KnowledgeBaseService."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from kbase.config.schema import UploadConfig
from kbase.entities import Entry, StoredEntry
from kbase.service.knowledge_base import KnowledgeBaseError, KnowledgeBaseService
from kbase.storage.base import StorageError
from kbase.storage.memory import InMemoryEntryStore


@pytest.fixture
async def store():
    store = InMemoryEntryStore()
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def service(store):
    return KnowledgeBaseService(store)


@pytest.mark.asyncio
class TestUploadFile:
    """Test file uploads."""

    async def test_text_upload(self, service, store):
        """Test an upload becomes a document entry with file metadata."""
        result = await service.upload_file(
            owner_id=1,
            file_name="notes.txt",
            file_type="text/plain",
            file_size=11,
            file_content="hello world",
            bot_id=5,
        )

        assert result.file_name == "notes.txt"
        assert result.status == "completed"

        entry = await store.get_entry(result.entry_id)
        assert entry.type == "document"
        assert entry.title == "notes.txt"
        assert entry.content == "hello world"
        metadata = entry.decoded_metadata()
        assert metadata["botId"] == 5
        assert metadata["fileType"] == "text/plain"
        assert metadata["fileSize"] == 11
        assert "uploadedAt" in metadata

    async def test_pdf_content_is_labelled(self, service, store):
        result = await service.upload_file(1, "book.pdf", "application/pdf", 100, "page one")

        entry = await store.get_entry(result.entry_id)
        assert entry.content == "[PDF: book.pdf]\npage one"

    async def test_size_limit(self, service, store):
        """Test files over 10MB are rejected before storage."""
        with pytest.raises(KnowledgeBaseError, match="File size exceeds 10MB limit"):
            await service.upload_file(1, "big.txt", "text/plain", 10 * 1024 * 1024 + 1, "x")

        assert await store.count() == 0

    async def test_size_at_limit_is_accepted(self, service):
        result = await service.upload_file(1, "edge.txt", "text/plain", 10 * 1024 * 1024, "x")

        assert result.status == "completed"

    async def test_configured_limit(self, store):
        service = KnowledgeBaseService(store, UploadConfig(max_file_size=2 * 1024 * 1024))

        with pytest.raises(KnowledgeBaseError, match="2MB"):
            await service.upload_file(1, "a.txt", "text/plain", 3 * 1024 * 1024, "x")

    async def test_storage_failure(self):
        store = AsyncMock()
        store.is_available = True
        store.add_entry.side_effect = StorageError("locked", storage_type="sqlite")
        service = KnowledgeBaseService(store)

        with pytest.raises(KnowledgeBaseError, match="Failed to upload file: locked"):
            await service.upload_file(1, "a.txt", "text/plain", 1, "x")

    async def test_unavailable(self):
        with pytest.raises(KnowledgeBaseError, match="Database not initialized"):
            await KnowledgeBaseService(InMemoryEntryStore()).upload_file(1, "a.txt", "text/plain", 1, "x")


@pytest.mark.asyncio
class TestListAndStats:
    """Test listing and statistics."""

    async def _seed(self, service, store):
        await service.upload_file(1, "a.txt", "text/plain", 100, "a", bot_id=1)
        await service.upload_file(1, "b.txt", "text/plain", 50, "b", bot_id=2)
        await store.add_entry(StoredEntry(owner_id=1, type="blog", title="Post", content="Body"))
        await store.add_entry(StoredEntry(owner_id=1, type="blog", title="Bad", content="x", metadata="{nope"))
        await service.upload_file(2, "c.txt", "text/plain", 999, "c", bot_id=1)

    async def test_list_all(self, service, store):
        await self._seed(service, store)

        entries = await service.list_entries(1)

        assert [e.title for e in entries] == ["a.txt", "b.txt", "Post", "Bad"]

    async def test_list_by_bot(self, service, store):
        """Test bot filtering skips entries without matching metadata."""
        await self._seed(service, store)

        entries = await service.list_entries(1, bot_id=1)

        assert [e.title for e in entries] == ["a.txt"]

    async def test_stats(self, service, store):
        await self._seed(service, store)

        stats = await service.get_stats(1)

        assert stats.total_entries == 4
        assert stats.storage_used == 150
        assert stats.entries_by_type == {"document": 2, "blog": 2}
        assert stats.last_updated is not None

    async def test_stats_for_bot(self, service, store):
        await self._seed(service, store)

        stats = await service.get_stats(1, bot_id=2)

        assert stats.total_entries == 1
        assert stats.storage_used == 50

    async def test_stats_empty(self, service):
        stats = await service.get_stats(99)

        assert stats.total_entries == 0
        assert stats.storage_used == 0
        assert stats.last_updated is None


@pytest.mark.asyncio
class TestDeleteEntry:
    """Test entry deletion."""

    async def test_delete_own_entry(self, service, store):
        result = await service.upload_file(1, "a.txt", "text/plain", 1, "a")

        assert await service.delete_entry(1, result.entry_id) is True
        assert await store.count() == 0

    async def test_cannot_delete_others_entry(self, service, store):
        result = await service.upload_file(1, "a.txt", "text/plain", 1, "a")

        assert await service.delete_entry(2, result.entry_id) is False
        assert await store.count() == 1

    async def test_delete_missing(self, service):
        assert await service.delete_entry(1, uuid4()) is False


@pytest.mark.asyncio
class TestAddAndGetEntry:
    """Test adding and fetching single entries."""

    async def test_add_entry(self, service, store):
        stored = await service.add_entry(
            1, Entry(type="artist", title="Me", content="Bio", url="https://me.test", metadata={"genre": "jazz"})
        )

        assert await store.get_entry(stored.id) == stored
        assert stored.owner_id == 1
        assert stored.decoded_metadata() == {"genre": "jazz"}

    async def test_add_entry_reports_every_violation(self, service, store):
        """Test single adds use the bulk import rules."""
        with pytest.raises(KnowledgeBaseError) as exc_info:
            await service.add_entry(1, Entry(type="bogus", title=" ", content="C"))

        assert str(exc_info.value) == (
            "Invalid type: bogus. Must be one of: website, book, music, artist, feature, blog; "
            "Missing or empty title"
        )
        assert await store.count() == 0

    async def test_add_entry_respects_title_limit(self, store):
        service = KnowledgeBaseService(store, max_title_length=5)

        with pytest.raises(KnowledgeBaseError, match="Title too long"):
            await service.add_entry(1, Entry(type="blog", title="Longer", content="C"))

    async def test_get_entry_is_owner_scoped(self, service):
        stored = await service.add_entry(1, Entry(type="blog", title="Post", content="Body"))

        assert await service.get_entry(1, stored.id) == stored
        assert await service.get_entry(2, stored.id) is None
        assert await service.get_entry(1, uuid4()) is None


@pytest.mark.asyncio
class TestSearchEntries:
    """Test searching entries."""

    @pytest.fixture
    async def seeded(self, service):
        await service.add_entry(1, Entry(type="music", title="Gospel Album", content="Ten tracks"))
        await service.add_entry(1, Entry(type="blog", title="Tour diary", content="Recording the ALBUM"))
        await service.add_entry(1, Entry(type="book", title="Memoir", content="My life"))
        await service.add_entry(2, Entry(type="music", title="Other album", content="Not mine"))

    async def test_query_matches_title_or_content(self, service, seeded):
        """Test text search is case-insensitive over title and content."""
        results = await service.search_entries(1, query="album")

        assert [e.title for e in results] == ["Gospel Album", "Tour diary"]

    async def test_type_filter(self, service, seeded):
        results = await service.search_entries(1, entry_type="music")

        assert [e.title for e in results] == ["Gospel Album"]

    async def test_query_and_type(self, service, seeded):
        assert [e.title for e in await service.search_entries(1, query="album", entry_type="blog")] == ["Tour diary"]

    async def test_no_filters_returns_everything(self, service, seeded):
        assert len(await service.search_entries(1)) == 3


@pytest.mark.asyncio
class TestUpdateEntry:
    """Test updating entries."""

    async def test_update_fields(self, service, store):
        stored = await service.add_entry(
            1, Entry(type="book", title="Draft", content="Old", url="https://old.test", metadata={"v": 1})
        )

        updated = await service.update_entry(1, stored.id, title="Final", metadata={"v": 2})

        assert updated.title == "Final"
        assert updated.content == "Old"
        assert updated.url == "https://old.test"
        assert updated.created_at == stored.created_at
        assert await store.get_entry(stored.id) == updated
        assert updated.decoded_metadata() == {"v": 2}

    async def test_empty_url_clears_it(self, service):
        stored = await service.add_entry(1, Entry(type="book", title="T", content="C", url="https://x.test"))

        updated = await service.update_entry(1, stored.id, url="")

        assert updated.url is None

    async def test_update_uploaded_document(self, service):
        """Test entries outside the bulk type set can still be edited."""
        result = await service.upload_file(1, "notes.txt", "text/plain", 5, "hello")

        updated = await service.update_entry(1, result.entry_id, content="hello again")

        assert updated.type == "document"
        assert updated.content == "hello again"

    async def test_blank_title_rejected(self, service, store):
        stored = await service.add_entry(1, Entry(type="blog", title="Post", content="Body"))

        with pytest.raises(KnowledgeBaseError, match="Missing or empty title"):
            await service.update_entry(1, stored.id, title="  ")

        assert (await store.get_entry(stored.id)).title == "Post"

    async def test_other_owner_cannot_update(self, service, store):
        stored = await service.add_entry(1, Entry(type="blog", title="Post", content="Body"))

        with pytest.raises(KnowledgeBaseError, match="not found"):
            await service.update_entry(2, stored.id, title="Hijacked")

        assert (await store.get_entry(stored.id)).title == "Post"

    async def test_storage_failure(self, service, store):
        stored = await service.add_entry(1, Entry(type="blog", title="Post", content="Body"))
        store.update_entry = AsyncMock(side_effect=StorageError("locked", storage_type="memory"))

        with pytest.raises(KnowledgeBaseError, match="Failed to update entry: locked"):
            await service.update_entry(1, stored.id, title="New")
