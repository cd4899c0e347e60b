"""In-memory storage implementation for testing and development.

Stores all entries in a dict keyed by id; insertion order doubles as
creation order.
"""

from typing import Optional
from uuid import UUID

from kbase.config.schema import EntryStoreConfig
from kbase.entities import StoredEntry
from kbase.storage.base import EntryStore, StorageError, StorageUnavailableError


class InMemoryEntryStore(EntryStore):
    """In-memory entry store implementation."""

    def __init__(self, config: Optional[EntryStoreConfig] = None) -> None:
        super().__init__(config or EntryStoreConfig(store_type="memory", connection_string=None))
        self.entries: dict[UUID, StoredEntry] = {}
        self._initialized = False

    async def initialize(self) -> None:
        self._initialized = True

    @property
    def is_available(self) -> bool:
        return self._initialized

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageUnavailableError(storage_type="memory")

    async def add_entry(self, entry: StoredEntry) -> None:
        """Store an entry."""
        self._require_initialized()
        if entry.id in self.entries:
            raise StorageError(f"Entry {entry.id} already exists", storage_type="memory")
        self.entries[entry.id] = entry

    async def get_entry(self, entry_id: UUID) -> Optional[StoredEntry]:
        self._require_initialized()
        return self.entries.get(entry_id)

    async def list_entries_by_owner(self, owner_id: int) -> list[StoredEntry]:
        """List every entry belonging to an owner."""
        self._require_initialized()
        return [entry for entry in self.entries.values() if entry.owner_id == owner_id]

    async def update_entry(self, entry: StoredEntry) -> bool:
        self._require_initialized()
        current = self.entries.get(entry.id)
        if current is None or current.owner_id != entry.owner_id:
            return False

        self.entries[entry.id] = entry.model_copy(update={"created_at": current.created_at})
        return True

    async def delete_entry(self, entry_id: UUID, owner_id: int) -> bool:
        """Delete an entry if it belongs to the owner."""
        self._require_initialized()
        entry = self.entries.get(entry_id)
        if entry is None or entry.owner_id != owner_id:
            return False

        del self.entries[entry_id]
        return True

    async def count(self, owner_id: Optional[int] = None) -> int:
        self._require_initialized()
        if owner_id is None:
            return len(self.entries)
        return sum(1 for entry in self.entries.values() if entry.owner_id == owner_id)

    async def close(self) -> None:
        """Drop all entries and mark the store unavailable."""
        self.entries.clear()
        self._initialized = False
