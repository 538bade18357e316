"""Storage interfaces shared by the DAL and its callers."""

from .bot_data_store import BotDataStore
from .document_client import DocumentClient, DocumentResponse, DocumentStatus

__all__ = [
    "BotDataStore",
    "DocumentClient",
    "DocumentResponse",
    "DocumentStatus",
]
