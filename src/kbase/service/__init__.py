"""Service layer - Business logic orchestration.

This module contains service classes that orchestrate business logic:
- KnowledgeBaseService: Add, fetch, search, update, upload, summarize and delete entries
- initialize_store: Store initialization helper
"""

from kbase.service.knowledge_base import (
    KnowledgeBaseError,
    KnowledgeBaseService,
    KnowledgeBaseStats,
    UploadResult,
)
from kbase.service.stores import initialize_store

__all__ = [
    "KnowledgeBaseError",
    "KnowledgeBaseService",
    "KnowledgeBaseStats",
    "UploadResult",
    "initialize_store",
]
