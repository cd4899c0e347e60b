"""Abstract base class for entry storage backends.

Why this exists:
- Allows swapping between SQLite and in-memory storage
- Keeps the import pipeline independent of the database driver
- Enables testing with in-memory implementations

How to extend:
1. Subclass EntryStore
2. Implement all abstract methods
3. Register in create_entry_store and EntryStoreType
4. Add optional dependencies to pyproject.toml
"""

from abc import ABC, abstractmethod
from uuid import UUID

from kbase.config.schema import EntryStoreConfig
from kbase.entities import StoredEntry


class EntryStore(ABC):
    """Abstract interface for knowledge-base entry storage.

    Implementations must:
    - Raise StorageUnavailableError from every data method until initialized
    - Wrap driver failures in StorageError
    - Return an owner's entries in insertion order
    """

    def __init__(self, config: EntryStoreConfig) -> None:
        """Initialize storage with configuration."""
        self.config = config

    @abstractmethod
    async def initialize(self) -> None:
        """Open connections and create tables."""
        pass

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """True once initialized and until closed."""
        pass

    @abstractmethod
    async def add_entry(self, entry: StoredEntry) -> None:
        """Store an entry.

        Args:
            entry: Entry to store

        Raises:
            StorageError: If the store rejects the entry
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> StoredEntry | None:
        """Retrieve an entry by ID.

        Returns:
            Entry if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_entries_by_owner(self, owner_id: int) -> list[StoredEntry]:
        """List every entry belonging to an owner, oldest first."""
        pass

    @abstractmethod
    async def update_entry(self, entry: StoredEntry) -> bool:
        """Overwrite the type, title, content, url and metadata of an existing entry.

        The entry is matched on both ``id`` and ``owner_id``; ``created_at`` is
        left as stored.

        Returns:
            True if updated, False if not found or owned by someone else
        """
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: UUID, owner_id: int) -> bool:
        """Delete an entry if it belongs to the owner.

        Returns:
            True if deleted, False if not found or owned by someone else
        """
        pass

    @abstractmethod
    async def count(self, owner_id: int | None = None) -> int:
        """Return number of entries stored, optionally for one owner."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources."""
        pass


class StorageError(Exception):
    """Base exception for storage errors."""

    def __init__(self, message: str, storage_type: str, original_error: Exception | None = None):
        self.message = message
        self.storage_type = storage_type
        self.original_error = original_error
        super().__init__(self.message)


class StorageUnavailableError(StorageError):
    """The store was never initialized or has been closed."""

    def __init__(self, storage_type: str, message: str = "Database not initialized"):
        super().__init__(message, storage_type=storage_type)
