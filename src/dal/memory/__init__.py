"""In-process DAL implementations."""

from .document_client import InMemoryDocumentClient

__all__ = ["InMemoryDocumentClient"]
