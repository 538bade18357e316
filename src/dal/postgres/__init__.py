"""PostgreSQL DAL Implementations.

This package contains the asyncpg-backed document client used by the bot-state store.
"""

from .document_client import PostgresDocumentClient

__all__ = ["PostgresDocumentClient"]
