"""Entry entities - knowledge-base records before and after persistence."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryType(str, Enum):
    """Closed set of types accepted by bulk import."""

    WEBSITE = "website"
    BOOK = "book"
    MUSIC = "music"
    ARTIST = "artist"
    FEATURE = "feature"
    BLOG = "blog"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class Entry(BaseModel):
    """One knowledge-base unit as read from bulk input.

    Fields are deliberately loose: a row that breaks the rules still has to be
    representable so that every violation can be reported. Nothing here is
    checked until the validator runs.
    """

    model_config = ConfigDict(frozen=True)

    type: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    url: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def encoded_metadata(self) -> Optional[str]:
        """Metadata as stored: JSON text, or None when there is none."""
        if self.metadata is None:
            return None
        return json.dumps(self.metadata)


class IndexedEntry(BaseModel):
    """An entry tagged with its zero-based position in the original input.

    ``metadata_error`` holds the reason a row's metadata could not be decoded;
    the validator turns it into a row error.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    entry: Entry
    metadata_error: Optional[str] = None


class StoredEntry(BaseModel):
    """An entry owned by a user, as held by an entry store."""

    id: UUID = Field(default_factory=uuid4)
    owner_id: int = Field(..., description="Owning user")
    type: str
    title: str
    content: str
    url: Optional[str] = None
    metadata: Optional[str] = Field(None, description="Metadata as JSON text")
    created_at: datetime = Field(default_factory=_utcnow)

    def decoded_metadata(self) -> dict[str, Any]:
        """Metadata as a mapping; empty when absent."""
        if not self.metadata:
            return {}
        value = json.loads(self.metadata)
        return value if isinstance(value, dict) else {}

    @classmethod
    def from_entry(cls, owner_id: int, entry: Entry) -> "StoredEntry":
        return cls(
            owner_id=owner_id,
            type=entry.type or "",
            title=entry.title or "",
            content=entry.content or "",
            url=entry.url,
            metadata=entry.encoded_metadata(),
        )
