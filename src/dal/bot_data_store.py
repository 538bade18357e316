"""Bot-state store with optimistic concurrency over a document client.

Each (identity, scope) pair maps to one document whose ETag acts as the
version token. ``save_async`` dispatches on the token carried by the value:

    ""          create; an existing document is a conflict
    "*"         upsert when data is present, unconditional delete when it is None
    any other   replace (data present) or delete (data None) only if the stored
                ETag still equals the token; otherwise a conflict

Nothing is retried here. On conflict, callers re-load, recompute and save
again with the freshly observed token.
"""

import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import ValidationError

from common.config.state_store import (
    DEFAULT_COLLECTION_ID,
    DEFAULT_DATABASE_ID,
    DEFAULT_INIT_TIMEOUT_SECONDS,
)
from common.errors.error_codes import error_code_for_status
from common.errors.state_errors import (
    StateConflictError,
    StateStorageError,
    StateStoreProvisioningError,
)
from common.interfaces.bot_data_store import BotDataStore
from common.interfaces.document_client import DocumentClient, DocumentResponse, DocumentStatus
from common.models.bot_state import (
    WILDCARD_TOKEN,
    BotIdentity,
    BotStateDocument,
    SaveResult,
    SaveStatus,
    StoreScope,
    VersionedValue,
)
from common.observability.metrics import state_store_metrics
from dal.entity_keys import build_document, get_entity_key
from dal.tracing import trace_state_operation
from dal.util.timeouts import run_with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONFLICT_STATUSES = (DocumentStatus.CONFLICT, DocumentStatus.PRECONDITION_FAILED)


class DocumentBotDataStore(BotDataStore):
    """BotDataStore implementation on top of any DocumentClient."""

    def __init__(
        self,
        client: DocumentClient,
        database_id: str = DEFAULT_DATABASE_ID,
        collection_id: str = DEFAULT_COLLECTION_ID,
        *,
        operation_timeout_seconds: Optional[float] = None,
    ):
        """Initialize the store.

        Construction does no I/O; await ``initialize_async`` before first use
        to provision the database and collection.
        """
        self.client = client
        self.database_id = database_id
        self.collection_id = collection_id
        self.operation_timeout_seconds = operation_timeout_seconds
        self._initialized = False

    @property
    def provider(self) -> str:
        """Provider id of the underlying document client."""
        return getattr(self.client, "provider", "unknown")

    @property
    def initialized(self) -> bool:
        """True once the container has been provisioned by this instance."""
        return self._initialized

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def initialize_async(
        self, timeout_seconds: Optional[float] = DEFAULT_INIT_TIMEOUT_SECONDS
    ) -> None:
        """Provision the container, bounded by ``timeout_seconds``.

        Raises:
            StateStoreTimeoutError: If provisioning does not finish in time.
            StateStoreProvisioningError: If the backend rejects provisioning.
        """
        await run_with_timeout(
            self.ensure_container_exists_async,
            timeout_seconds,
            operation_name="initialize",
        )

    async def ensure_container_exists_async(self) -> None:
        """Check-then-create the database and the collection.

        Safe to call repeatedly and from concurrent initializers: a create that
        loses the race reports CONFLICT, which counts as success.
        """
        await self._ensure(
            f"database {self.database_id}",
            lambda: self.client.read_database(self.database_id),
            lambda: self.client.create_database(self.database_id),
        )
        await self._ensure(
            f"collection {self.database_id}/{self.collection_id}",
            lambda: self.client.read_collection(self.database_id, self.collection_id),
            lambda: self.client.create_collection(self.database_id, self.collection_id),
        )
        self._initialized = True

    async def _ensure(
        self,
        label: str,
        read: Callable[[], Awaitable[DocumentResponse]],
        create: Callable[[], Awaitable[DocumentResponse]],
    ) -> None:
        existing = await read()
        if existing.succeeded:
            return
        if existing.status is not DocumentStatus.NOT_FOUND:
            raise StateStoreProvisioningError(
                f"Failed to read {label}: {existing.message}",
                status_code=existing.status_code,
            )

        created = await create()
        if created.succeeded:
            logger.info("Provisioned bot-state %s", label)
            return
        if created.status is DocumentStatus.CONFLICT:
            logger.info("Bot-state %s was created concurrently", label)
            return
        raise StateStoreProvisioningError(
            f"Failed to create {label}: {created.message}",
            status_code=created.status_code,
        )

    async def delete_container_if_exists_async(self) -> bool:
        """Drop the database if present; returns True when something was deleted."""
        existing = await self.client.read_database(self.database_id)
        if existing.status is DocumentStatus.NOT_FOUND:
            return False
        if not existing.succeeded:
            raise self._storage_error("read database", existing)

        deleted = await self.client.delete_database(self.database_id)
        if deleted.status is DocumentStatus.NOT_FOUND:
            return False
        if not deleted.succeeded:
            raise self._storage_error("delete database", deleted)

        self._initialized = False
        logger.info("Deleted bot-state database %s", self.database_id)
        return True

    # ------------------------------------------------------------------
    # State operations
    # ------------------------------------------------------------------

    async def load_async(self, identity: BotIdentity, scope: StoreScope) -> VersionedValue:
        """Load state for an identity; an empty value when nothing was saved.

        Raises:
            InvalidStoreScopeError: If ``scope`` is unsupported.
            StateStorageError: On any backend failure other than not-found.
        """
        entity_key = get_entity_key(identity, scope)

        async def _load() -> VersionedValue:
            response = await self.client.read_document(
                self.database_id, self.collection_id, entity_key
            )
            if response.status is DocumentStatus.NOT_FOUND:
                return VersionedValue.empty()
            if not response.succeeded:
                raise self._storage_error("load", response)
            try:
                document = BotStateDocument.from_body(response.document or {"id": entity_key})
            except ValidationError as exc:
                logger.warning("Bot-state record %s has an unreadable body: %s", entity_key, exc)
                raise StateStorageError(
                    f"Bot state load failed: malformed stored record for {entity_key}",
                    status_code=500,
                ) from exc
            return VersionedValue(version_token=response.etag or "", data=document.data)

        return await self._execute("load", StoreScope(scope), entity_key, _load)

    async def save_async(
        self, identity: BotIdentity, scope: StoreScope, value: VersionedValue
    ) -> SaveResult:
        """Create, replace or delete state under optimistic concurrency.

        Returns:
            SaveResult with status SAVED, DELETED or CONFLICT.

        Raises:
            InvalidStoreScopeError: If ``scope`` is unsupported.
            StateStorageError: On any backend failure other than a conflict.
        """
        document = build_document(identity, scope, value.data)
        entity_key = document.id
        token = value.version_token or ""
        db, coll = self.database_id, self.collection_id

        async def _save() -> SaveResult:
            if not token:
                response = await self.client.create_document(db, coll, document.to_body())
                return self._write_result("create", entity_key, response, SaveStatus.SAVED)

            if token == WILDCARD_TOKEN:
                if value.data is not None:
                    response = await self.client.upsert_document(db, coll, document.to_body())
                    return self._write_result("upsert", entity_key, response, SaveStatus.SAVED)
                response = await self.client.delete_document(db, coll, entity_key)
                if response.status is DocumentStatus.NOT_FOUND:
                    return SaveResult(status=SaveStatus.DELETED, entity_key=entity_key)
                return self._write_result("delete", entity_key, response, SaveStatus.DELETED)

            if value.data is not None:
                response = await self.client.replace_document(
                    db, coll, document.to_body(), if_match=token
                )
                return self._write_result("replace", entity_key, response, SaveStatus.SAVED)
            response = await self.client.delete_document(db, coll, entity_key, if_match=token)
            return self._write_result("delete", entity_key, response, SaveStatus.DELETED)

        return await self._execute("save", StoreScope(scope), entity_key, _save)

    async def flush_async(self, identity: BotIdentity) -> bool:
        """Every save is already durable; nothing is buffered."""
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_result(
        self,
        operation: str,
        entity_key: str,
        response: DocumentResponse,
        success: SaveStatus,
    ) -> SaveResult:
        if response.succeeded:
            return SaveResult(
                status=success,
                entity_key=entity_key,
                version_token="" if success is SaveStatus.DELETED else (response.etag or ""),
            )

        # A conditional write whose target vanished lost the race as well.
        conditional = operation in ("replace", "delete")
        if response.status in _CONFLICT_STATUSES or (
            conditional and response.status is DocumentStatus.NOT_FOUND
        ):
            logger.info(
                "Bot-state %s rejected: precondition failed (%s)", operation, response.status.value
            )
            state_store_metrics.add_counter(
                "bot_state.conflicts",
                description="Writes rejected by the optimistic-concurrency check",
                attributes={"operation": operation, "provider": self.provider},
            )
            return SaveResult(
                status=SaveStatus.CONFLICT,
                entity_key=entity_key,
                error=StateConflictError(
                    f"Precondition failed for bot state {operation}: {response.message}",
                    entity_key=entity_key,
                ),
            )

        raise self._storage_error(operation, response)

    def _storage_error(self, operation: str, response: DocumentResponse) -> StateStorageError:
        logger.warning(
            "Bot-state %s failed with status %s: %s",
            operation,
            response.status_code,
            response.message,
        )
        return StateStorageError(
            f"Bot state {operation} failed: {response.message or response.status.value}",
            status_code=response.status_code,
            code=error_code_for_status(response.status_code),
        )

    async def _execute(
        self,
        operation: str,
        scope: StoreScope,
        entity_key: str,
        work: Callable[[], Awaitable[T]],
    ) -> T:
        started = time.monotonic()
        try:
            return await trace_state_operation(
                f"dal.bot_state.{operation}",
                self.provider,
                run_with_timeout(
                    work, self.operation_timeout_seconds, operation_name=operation
                ),
                scope=scope.value,
                entity_key=entity_key,
            )
        finally:
            state_store_metrics.record_histogram(
                "bot_state.operation.duration_ms",
                (time.monotonic() - started) * 1000.0,
                unit="ms",
                attributes={"operation": operation, "provider": self.provider},
            )
