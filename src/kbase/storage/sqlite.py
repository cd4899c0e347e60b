"""SQLite storage implementation for knowledge-base entries.

Provides persistent storage using SQLite through aiosqlite. Metadata is kept
as JSON text exactly as it arrives in StoredEntry.metadata.
"""

import os
from datetime import datetime
from typing import Optional
from uuid import UUID

import aiosqlite

from kbase.config.schema import EntryStoreConfig
from kbase.entities import StoredEntry
from kbase.storage.base import EntryStore, StorageError, StorageUnavailableError


class SQLiteEntryStore(EntryStore):
    """SQLite entry store implementation.

    One table, ``knowledge_entries``, indexed by owner.
    """

    def __init__(self, config: EntryStoreConfig) -> None:
        """Initialize SQLite entry store."""
        super().__init__(config)

        conn_str = config.connection_string
        if conn_str is None:
            db_dir = os.path.expanduser("~/.kbase")
            os.makedirs(db_dir, exist_ok=True)
            self.db_path = os.path.join(db_dir, "kbase.db")
        elif conn_str.startswith("sqlite:///"):
            self.db_path = os.path.expanduser(conn_str.replace("sqlite:///", ""))
        else:
            self.db_path = os.path.expanduser(conn_str)

        self.connection: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """Initialize the entry store (create tables)."""
        try:
            if self.db_path != ":memory:":
                parent = os.path.dirname(self.db_path)
                if parent:
                    os.makedirs(parent, exist_ok=True)

            self.connection = await aiosqlite.connect(self.db_path)
            self.connection.row_factory = aiosqlite.Row

            await self.connection.execute("""
                CREATE TABLE IF NOT EXISTS knowledge_entries (
                    id TEXT PRIMARY KEY,
                    owner_id INTEGER NOT NULL,
                    type TEXT NOT NULL,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    url TEXT,
                    metadata TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            await self.connection.execute(
                "CREATE INDEX IF NOT EXISTS idx_entries_owner ON knowledge_entries(owner_id)"
            )
            await self.connection.commit()

        except Exception as e:
            raise StorageError(
                f"Failed to initialize SQLite entry store: {e}",
                storage_type="sqlite",
                original_error=e,
            )

    @property
    def is_available(self) -> bool:
        return self.connection is not None

    def _require_connection(self) -> aiosqlite.Connection:
        if not self.connection:
            raise StorageUnavailableError(storage_type="sqlite")
        return self.connection

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> StoredEntry:
        return StoredEntry(
            id=UUID(row["id"]),
            owner_id=row["owner_id"],
            type=row["type"],
            title=row["title"],
            content=row["content"],
            url=row["url"],
            metadata=row["metadata"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def add_entry(self, entry: StoredEntry) -> None:
        """Store an entry."""
        connection = self._require_connection()

        try:
            await connection.execute(
                """
                INSERT INTO knowledge_entries (id, owner_id, type, title, content, url, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.id),
                    entry.owner_id,
                    entry.type,
                    entry.title,
                    entry.content,
                    entry.url,
                    entry.metadata,
                    entry.created_at.isoformat(),
                ),
            )
            await connection.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to add entry: {e}",
                storage_type="sqlite",
                original_error=e,
            )

    async def get_entry(self, entry_id: UUID) -> Optional[StoredEntry]:
        """Retrieve an entry by ID."""
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                "SELECT * FROM knowledge_entries WHERE id = ?",
                (str(entry_id),),
            )
            row = await cursor.fetchone()
        except Exception as e:
            raise StorageError(
                f"Failed to get entry: {e}",
                storage_type="sqlite",
                original_error=e,
            )

        return self._row_to_entry(row) if row else None

    async def list_entries_by_owner(self, owner_id: int) -> list[StoredEntry]:
        """List every entry belonging to an owner, oldest first."""
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                "SELECT * FROM knowledge_entries WHERE owner_id = ? ORDER BY created_at, rowid",
                (owner_id,),
            )
            rows = await cursor.fetchall()
        except Exception as e:
            raise StorageError(
                f"Failed to list entries: {e}",
                storage_type="sqlite",
                original_error=e,
            )

        return [self._row_to_entry(row) for row in rows]

    async def update_entry(self, entry: StoredEntry) -> bool:
        """Overwrite an existing entry's fields if it belongs to entry.owner_id."""
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                """
                UPDATE knowledge_entries
                SET type = ?, title = ?, content = ?, url = ?, metadata = ?
                WHERE id = ? AND owner_id = ?
                """,
                (
                    entry.type,
                    entry.title,
                    entry.content,
                    entry.url,
                    entry.metadata,
                    str(entry.id),
                    entry.owner_id,
                ),
            )
            await connection.commit()
            return cursor.rowcount > 0
        except Exception as e:
            raise StorageError(
                f"Failed to update entry: {e}",
                storage_type="sqlite",
                original_error=e,
            )

    async def delete_entry(self, entry_id: UUID, owner_id: int) -> bool:
        """Delete an entry if it belongs to the owner."""
        connection = self._require_connection()

        try:
            cursor = await connection.execute(
                "DELETE FROM knowledge_entries WHERE id = ? AND owner_id = ?",
                (str(entry_id), owner_id),
            )
            await connection.commit()
            return cursor.rowcount > 0
        except Exception as e:
            raise StorageError(
                f"Failed to delete entry: {e}",
                storage_type="sqlite",
                original_error=e,
            )

    async def count(self, owner_id: Optional[int] = None) -> int:
        """Return number of entries stored, optionally for one owner."""
        connection = self._require_connection()

        try:
            if owner_id is None:
                cursor = await connection.execute("SELECT COUNT(*) FROM knowledge_entries")
            else:
                cursor = await connection.execute(
                    "SELECT COUNT(*) FROM knowledge_entries WHERE owner_id = ?",
                    (owner_id,),
                )
            row = await cursor.fetchone()
        except Exception as e:
            raise StorageError(
                f"Failed to count entries: {e}",
                storage_type="sqlite",
                original_error=e,
            )

        return row[0]

    async def close(self) -> None:
        """Close database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None
