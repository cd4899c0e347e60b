"""Pipelines: bulk import and export of knowledge-base entries."""

from kbase.pipelines.bulk_import import BulkImportService

__all__ = ["BulkImportService"]
