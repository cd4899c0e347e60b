"""Storage layer: knowledge-base entry stores."""

from kbase.config.schema import EntryStoreConfig
from kbase.storage.base import EntryStore, StorageError, StorageUnavailableError


def create_entry_store(config: EntryStoreConfig) -> EntryStore:
    """Factory function to create entry stores based on configuration.

    Args:
        config: Store configuration with store_type

    Returns:
        Entry store, not yet initialized

    Raises:
        ValueError: If store_type is unknown
        StorageError: If dependencies are missing

    Example:
        store = create_entry_store(EntryStoreConfig(store_type="memory"))
        await store.initialize()
    """
    store_type = config.store_type.value.lower()

    if store_type == "memory":
        from kbase.storage.memory import InMemoryEntryStore

        return InMemoryEntryStore(config)

    elif store_type == "sqlite":
        try:
            from kbase.storage.sqlite import SQLiteEntryStore

            return SQLiteEntryStore(config)
        except ImportError as e:
            raise StorageError(
                message="SQLite entry store requires the aiosqlite package",
                storage_type="sqlite",
                original_error=e,
            )

    else:
        raise ValueError(
            f"Unknown entry store type: '{store_type}'. "
            f"Supported types: memory, sqlite"
        )


__all__ = [
    "EntryStore",
    "StorageError",
    "StorageUnavailableError",
    "create_entry_store",
]
