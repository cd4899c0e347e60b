"""Store initialization service.

Provides helper functions for initializing storage components.
"""

from kbase.config.schema import AppConfig
from kbase.storage import EntryStore, create_entry_store


async def initialize_store(config: AppConfig) -> EntryStore:
    """Create and initialize the configured entry store.

    Args:
        config: Application configuration

    Returns:
        Ready-to-use entry store
    """
    store = create_entry_store(config.storage)
    await store.initialize()
    return store
