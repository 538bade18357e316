"""DAL Factory with singleton, environment-driven provider selection.

This module provides lazy singleton getters for the bot-state store and the
document client behind it. Provider selection is controlled via environment
variables (see ``common.config.state_store``).

Environment Variables:
    BOT_STATE_STORE_PROVIDER: Document backend (default: "memory")

Canonical Provider IDs:
    - "memory": InMemoryDocumentClient
    - "postgres": PostgresDocumentClient (requires BOT_STATE_POSTGRES_URL or POSTGRES_URL)

Example:
    >>> from dal.factory import get_bot_data_store
    >>> store = get_bot_data_store()
    >>> await store.initialize_async()
"""

import logging
from typing import Callable, Optional

from dotenv import load_dotenv

from common.config.state_store import StateStoreSettings
from common.interfaces import DocumentClient
from dal.bot_data_store import DocumentBotDataStore
from dal.util.env import get_provider_env

load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================================
# Provider Registry
# =============================================================================

DOCUMENT_CLIENT_PROVIDERS: "dict[str, Callable[[StateStoreSettings], DocumentClient]]" = {}


def _memory_client(settings: StateStoreSettings) -> DocumentClient:
    from dal.memory import InMemoryDocumentClient

    return InMemoryDocumentClient()


def _postgres_client(settings: StateStoreSettings) -> DocumentClient:
    from dal.postgres import PostgresDocumentClient

    if not settings.postgres_url:
        raise ValueError(
            "BOT_STATE_STORE_PROVIDER=postgres requires BOT_STATE_POSTGRES_URL or POSTGRES_URL."
        )
    return PostgresDocumentClient(settings.postgres_url)


def _register_defaults() -> None:
    DOCUMENT_CLIENT_PROVIDERS.setdefault("memory", _memory_client)
    DOCUMENT_CLIENT_PROVIDERS.setdefault("postgres", _postgres_client)


# =============================================================================
# Singleton Instances
# =============================================================================

_document_client: Optional[DocumentClient] = None
_bot_data_store: Optional[DocumentBotDataStore] = None


def get_document_client(settings: Optional[StateStoreSettings] = None) -> DocumentClient:
    """Get or create the singleton DocumentClient instance.

    Raises:
        ValueError: If BOT_STATE_STORE_PROVIDER is set to an invalid value, or the
            selected provider is missing its connection settings.
    """
    global _document_client
    if _document_client is None:
        _register_defaults()
        settings = settings or StateStoreSettings.from_env()
        provider = get_provider_env(
            "BOT_STATE_STORE_PROVIDER",
            default="memory",
            allowed=set(DOCUMENT_CLIENT_PROVIDERS.keys()),
            value=settings.provider,
        )
        logger.info(f"Initializing DocumentClient with provider: {provider}")
        _document_client = DOCUMENT_CLIENT_PROVIDERS[provider](settings)

    return _document_client


def get_bot_data_store(settings: Optional[StateStoreSettings] = None) -> DocumentBotDataStore:
    """Get or create the singleton bot-state store.

    The store is returned unprovisioned; callers await ``initialize_async``
    once at startup.
    """
    global _bot_data_store
    if _bot_data_store is None:
        settings = settings or StateStoreSettings.from_env()
        _bot_data_store = DocumentBotDataStore(
            get_document_client(settings),
            database_id=settings.database_id,
            collection_id=settings.collection_id,
            operation_timeout_seconds=settings.operation_timeout_seconds,
        )

    return _bot_data_store


def reset_singletons() -> None:
    """Reset all singleton instances (testing only)."""
    global _document_client, _bot_data_store
    _document_client = None
    _bot_data_store = None
