"""Knowledge base management for a single owner.

Provides operations outside bulk import:
- Adding, fetching, updating and deleting single entries
- Uploading a file as a single "document" entry
- Listing entries (optionally scoped to one bot) and searching them
- Summarizing storage usage

Every operation is scoped to one owner: another owner's entry behaves as if
it did not exist.
"""

import json
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from kbase.config.schema import UploadConfig
from kbase.core.validation import MAX_TITLE_LENGTH, EntryValidator
from kbase.entities import Entry, IndexedEntry, StoredEntry
from kbase.observability.logging import get_logger
from kbase.storage.base import EntryStore, StorageError

logger = get_logger(__name__)

DOCUMENT_TYPE = "document"
PDF_MIME_TYPE = "application/pdf"


class UploadResult(BaseModel):
    """Outcome of a file upload."""

    entry_id: UUID
    file_name: str
    status: str = "completed"


class KnowledgeBaseStats(BaseModel):
    """Summary of an owner's (or one bot's) entries."""

    total_entries: int = 0
    storage_used: int = Field(0, description="Sum of uploaded file sizes in bytes")
    last_updated: Optional[datetime] = None
    entries_by_type: dict[str, int] = Field(default_factory=dict)


def _metadata(entry: StoredEntry) -> dict[str, Any]:
    try:
        return entry.decoded_metadata()
    except ValueError:
        logger.warning("entry_metadata_unreadable", entry_id=str(entry.id))
        return {}


class KnowledgeBaseService:
    """Manager for an owner's knowledge-base entries.

    Every operation raises KnowledgeBaseError when the store is unavailable
    or rejects the request.
    """

    def __init__(
        self,
        store: Optional[EntryStore],
        config: Optional[UploadConfig] = None,
        max_title_length: int = MAX_TITLE_LENGTH,
    ):
        self.store = store
        self.config = config or UploadConfig()
        self.validator = EntryValidator(max_title_length=max_title_length)

    def _require_store(self) -> EntryStore:
        if self.store is None or not self.store.is_available:
            raise KnowledgeBaseError("Database not initialized")
        return self.store

    async def upload_file(
        self,
        owner_id: int,
        file_name: str,
        file_type: str,
        file_size: int,
        file_content: str,
        bot_id: Optional[int] = None,
    ) -> UploadResult:
        """Store an uploaded file's text as a document entry.

        Args:
            owner_id: Uploading user
            file_name: Original file name, used as the entry title
            file_type: MIME type reported for the file
            file_size: Size in bytes reported for the file
            file_content: Extracted text content
            bot_id: Bot the file trains, recorded in metadata

        Returns:
            UploadResult for the new entry

        Raises:
            KnowledgeBaseError: If the file is too large or cannot be stored
        """
        store = self._require_store()

        if file_size > self.config.max_file_size:
            limit_mb = self.config.max_file_size // (1024 * 1024)
            raise KnowledgeBaseError(f"File size exceeds {limit_mb}MB limit")

        text_content = file_content
        if file_type == PDF_MIME_TYPE:
            text_content = f"[PDF: {file_name}]\n{file_content}"

        metadata = {
            "botId": bot_id,
            "fileType": file_type,
            "fileSize": file_size,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }
        entry = StoredEntry(
            owner_id=owner_id,
            type=DOCUMENT_TYPE,
            title=file_name,
            content=text_content,
            metadata=json.dumps(metadata),
        )

        try:
            await store.add_entry(entry)
        except StorageError as e:
            raise KnowledgeBaseError(f"Failed to upload file: {e.message}") from e

        logger.info("file_uploaded", owner_id=owner_id, entry_id=str(entry.id), file_size=file_size)
        return UploadResult(entry_id=entry.id, file_name=file_name)

    async def add_entry(self, owner_id: int, entry: Entry) -> StoredEntry:
        """Add a single entry under the same rules bulk import applies.

        Raises:
            KnowledgeBaseError: If the entry breaks a rule (every violation is
                listed in the message) or cannot be stored
        """
        store = self._require_store()

        errors = self.validator.check(IndexedEntry(index=0, entry=entry))
        if errors:
            raise KnowledgeBaseError("; ".join(errors))

        stored = StoredEntry.from_entry(owner_id, entry)
        try:
            await store.add_entry(stored)
        except StorageError as e:
            raise KnowledgeBaseError(f"Failed to add entry: {e.message}") from e

        logger.info("entry_added", owner_id=owner_id, entry_id=str(stored.id), type=stored.type)
        return stored

    async def get_entry(self, owner_id: int, entry_id: UUID) -> Optional[StoredEntry]:
        """Fetch one of the owner's entries; other owners' entries read as missing."""
        store = self._require_store()

        try:
            entry = await store.get_entry(entry_id)
        except StorageError as e:
            raise KnowledgeBaseError(f"Failed to get entry: {e.message}") from e

        if entry is None or entry.owner_id != owner_id:
            return None
        return entry

    async def list_entries(self, owner_id: int, bot_id: Optional[int] = None) -> list[StoredEntry]:
        """List an owner's entries, keeping only one bot's when bot_id is given."""
        store = self._require_store()

        try:
            entries = await store.list_entries_by_owner(owner_id)
        except StorageError as e:
            raise KnowledgeBaseError(f"Failed to list entries: {e.message}") from e

        if bot_id is None:
            return entries
        return [entry for entry in entries if _metadata(entry).get("botId") == bot_id]

    async def get_stats(self, owner_id: int, bot_id: Optional[int] = None) -> KnowledgeBaseStats:
        """Summarize the entries list_entries would return."""
        entries = await self.list_entries(owner_id, bot_id)
        if not entries:
            return KnowledgeBaseStats()

        storage_used = 0
        for entry in entries:
            size = _metadata(entry).get("fileSize") or 0
            if isinstance(size, (int, float)):
                storage_used += int(size)

        return KnowledgeBaseStats(
            total_entries=len(entries),
            storage_used=storage_used,
            last_updated=max(entry.created_at for entry in entries),
            entries_by_type=dict(Counter(entry.type for entry in entries)),
        )

    async def search_entries(
        self,
        owner_id: int,
        query: Optional[str] = None,
        entry_type: Optional[str] = None,
    ) -> list[StoredEntry]:
        """Find the owner's entries by type and/or text.

        ``query`` matches case-insensitively anywhere in the title or content.
        With neither filter every entry is returned.
        """
        entries = await self.list_entries(owner_id)

        if entry_type:
            entries = [entry for entry in entries if entry.type == entry_type]

        needle = (query or "").strip().lower()
        if needle:
            entries = [
                entry
                for entry in entries
                if needle in entry.title.lower() or needle in entry.content.lower()
            ]

        return entries

    async def update_entry(
        self,
        owner_id: int,
        entry_id: UUID,
        title: Optional[str] = None,
        content: Optional[str] = None,
        url: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> StoredEntry:
        """Change an entry's title, content, url or metadata.

        Arguments left as None keep their stored value. The type cannot be
        changed, so only the title and content rules are rechecked.

        Raises:
            KnowledgeBaseError: If the entry is missing, not the owner's, breaks
                a rule after the change, or cannot be stored
        """
        current = await self.get_entry(owner_id, entry_id)
        if current is None:
            raise KnowledgeBaseError(f"Entry {entry_id} not found")

        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if url is not None:
            changes["url"] = url or None
        if metadata is not None:
            changes["metadata"] = json.dumps(metadata)
        updated = current.model_copy(update=changes)

        errors = self.validator.check_text(Entry(title=updated.title, content=updated.content))
        if errors:
            raise KnowledgeBaseError("; ".join(errors))

        try:
            found = await self._require_store().update_entry(updated)
        except StorageError as e:
            raise KnowledgeBaseError(f"Failed to update entry: {e.message}") from e
        if not found:
            raise KnowledgeBaseError(f"Entry {entry_id} not found")

        logger.info("entry_updated", owner_id=owner_id, entry_id=str(entry_id), fields=sorted(changes))
        return updated

    async def delete_entry(self, owner_id: int, entry_id: UUID) -> bool:
        """Delete an entry; only the owner's own entries are touched."""
        store = self._require_store()

        try:
            deleted = await store.delete_entry(entry_id, owner_id)
        except StorageError as e:
            raise KnowledgeBaseError(f"Failed to delete entry: {e.message}") from e

        logger.info("entry_delete", owner_id=owner_id, entry_id=str(entry_id), deleted=deleted)
        return deleted


class KnowledgeBaseError(Exception):
    """Exception raised by knowledge base operations."""

    pass
