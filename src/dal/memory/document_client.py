"""Process-local document client.

Databases and collections are nested dicts guarded by one asyncio lock, so
every call is atomic with respect to other coroutines on the same loop.
Documents are deep-copied on the way in and out, and every write mints a new
uuid4 ETag.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from common.interfaces.document_client import DocumentResponse, DocumentStatus

logger = logging.getLogger(__name__)

_Entry = Tuple[str, Dict[str, Any]]


class InMemoryDocumentClient:
    """DocumentClient implementation backed by in-process dictionaries."""

    provider = "memory"

    def __init__(self) -> None:
        """Initialize an empty document space."""
        self._databases: Dict[str, Dict[str, Dict[str, _Entry]]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _new_etag() -> str:
        return f'"{uuid4().hex}"'

    def _collection(
        self, database_id: str, collection_id: str
    ) -> Optional[Dict[str, _Entry]]:
        database = self._databases.get(database_id)
        if database is None:
            return None
        return database.get(collection_id)

    @staticmethod
    def _missing_collection(database_id: str, collection_id: str) -> DocumentResponse:
        return DocumentResponse.of(
            DocumentStatus.NOT_FOUND,
            message=f"Collection {database_id}/{collection_id} does not exist",
        )

    def _stored(self, collection: Dict[str, _Entry], document: Dict[str, Any]) -> DocumentResponse:
        etag = self._new_etag()
        body = copy.deepcopy(document)
        collection[body["id"]] = (etag, body)
        return DocumentResponse.of(DocumentStatus.OK, document=copy.deepcopy(body), etag=etag)

    async def read_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> DocumentResponse:
        """Point-read a document by id."""
        async with self._lock:
            collection = self._collection(database_id, collection_id)
            if collection is None:
                return self._missing_collection(database_id, collection_id)
            entry = collection.get(document_id)
            if entry is None:
                return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=document_id)
            etag, body = entry
            return DocumentResponse.of(DocumentStatus.OK, document=copy.deepcopy(body), etag=etag)

    async def create_document(
        self, database_id: str, collection_id: str, document: Dict[str, Any]
    ) -> DocumentResponse:
        """Insert a document; CONFLICT if its id already exists."""
        async with self._lock:
            collection = self._collection(database_id, collection_id)
            if collection is None:
                return self._missing_collection(database_id, collection_id)
            if document["id"] in collection:
                return DocumentResponse.of(
                    DocumentStatus.CONFLICT, message=f"Document {document['id']} already exists"
                )
            stored = self._stored(collection, document)
            return DocumentResponse.of(
                DocumentStatus.CREATED, document=stored.document, etag=stored.etag
            )

    async def replace_document(
        self,
        database_id: str,
        collection_id: str,
        document: Dict[str, Any],
        if_match: Optional[str] = None,
    ) -> DocumentResponse:
        """Replace an existing document, honoring an optional ETag precondition."""
        async with self._lock:
            collection = self._collection(database_id, collection_id)
            if collection is None:
                return self._missing_collection(database_id, collection_id)
            entry = collection.get(document["id"])
            if entry is None:
                return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=document["id"])
            if if_match is not None and entry[0] != if_match:
                return DocumentResponse.of(
                    DocumentStatus.PRECONDITION_FAILED, message="ETag mismatch"
                )
            return self._stored(collection, document)

    async def upsert_document(
        self, database_id: str, collection_id: str, document: Dict[str, Any]
    ) -> DocumentResponse:
        """Insert or replace a document unconditionally."""
        async with self._lock:
            collection = self._collection(database_id, collection_id)
            if collection is None:
                return self._missing_collection(database_id, collection_id)
            return self._stored(collection, document)

    async def delete_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        if_match: Optional[str] = None,
    ) -> DocumentResponse:
        """Delete a document, honoring an optional ETag precondition."""
        async with self._lock:
            collection = self._collection(database_id, collection_id)
            if collection is None:
                return self._missing_collection(database_id, collection_id)
            entry = collection.get(document_id)
            if entry is None:
                return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=document_id)
            if if_match is not None and entry[0] != if_match:
                return DocumentResponse.of(
                    DocumentStatus.PRECONDITION_FAILED, message="ETag mismatch"
                )
            del collection[document_id]
            return DocumentResponse.of(DocumentStatus.OK, status_code=204)

    async def read_database(self, database_id: str) -> DocumentResponse:
        """Report whether a database exists."""
        async with self._lock:
            if database_id in self._databases:
                return DocumentResponse.of(DocumentStatus.OK)
            return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=database_id)

    async def create_database(self, database_id: str) -> DocumentResponse:
        """Create a database; CONFLICT if it already exists."""
        async with self._lock:
            if database_id in self._databases:
                return DocumentResponse.of(DocumentStatus.CONFLICT, message=database_id)
            self._databases[database_id] = {}
            logger.info("Created in-memory database %s", database_id)
            return DocumentResponse.of(DocumentStatus.CREATED)

    async def delete_database(self, database_id: str) -> DocumentResponse:
        """Drop a database and all its collections."""
        async with self._lock:
            if self._databases.pop(database_id, None) is None:
                return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=database_id)
            return DocumentResponse.of(DocumentStatus.OK, status_code=204)

    async def read_collection(self, database_id: str, collection_id: str) -> DocumentResponse:
        """Report whether a collection exists."""
        async with self._lock:
            if self._collection(database_id, collection_id) is None:
                return self._missing_collection(database_id, collection_id)
            return DocumentResponse.of(DocumentStatus.OK)

    async def create_collection(self, database_id: str, collection_id: str) -> DocumentResponse:
        """Create a collection; CONFLICT if it already exists."""
        async with self._lock:
            database = self._databases.get(database_id)
            if database is None:
                return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=database_id)
            if collection_id in database:
                return DocumentResponse.of(DocumentStatus.CONFLICT, message=collection_id)
            database[collection_id] = {}
            logger.info("Created in-memory collection %s/%s", database_id, collection_id)
            return DocumentResponse.of(DocumentStatus.CREATED)

    def count_collections(self, database_id: str) -> int:
        """Diagnostic count of collections in a database; 0 when it does not exist.

        Used to check provisioning idempotence; not part of the DocumentClient protocol.
        """
        return len(self._databases.get(database_id, {}))
