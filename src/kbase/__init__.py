"""kbase - knowledge base bulk import/export."""

__version__ = "0.1.0"
