"""Protocol for the document database that backs the bot-state store.

Every call reports its outcome as a ``DocumentResponse``; expected outcomes
(not found, conflict, precondition failed) are statuses, not exceptions.
Status codes follow HTTP semantics so stores can surface them unchanged.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, runtime_checkable


class DocumentStatus(str, Enum):
    """Distinguishable outcomes of a document client call."""

    OK = "ok"
    CREATED = "created"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    ERROR = "error"


_DEFAULT_STATUS_CODES = {
    DocumentStatus.OK: 200,
    DocumentStatus.CREATED: 201,
    DocumentStatus.NOT_FOUND: 404,
    DocumentStatus.CONFLICT: 409,
    DocumentStatus.PRECONDITION_FAILED: 412,
    DocumentStatus.ERROR: 500,
}


@dataclass(frozen=True)
class DocumentResponse:
    """Outcome of a single document client call."""

    status: DocumentStatus
    document: Optional[Dict[str, Any]] = None
    etag: Optional[str] = None
    status_code: int = 0
    message: str = ""

    @property
    def succeeded(self) -> bool:
        """True for OK and CREATED."""
        return self.status in (DocumentStatus.OK, DocumentStatus.CREATED)

    @classmethod
    def of(
        cls,
        status: DocumentStatus,
        *,
        document: Optional[Dict[str, Any]] = None,
        etag: Optional[str] = None,
        status_code: Optional[int] = None,
        message: str = "",
    ) -> "DocumentResponse":
        """Build a response, defaulting the status code from the status."""
        return cls(
            status=status,
            document=document,
            etag=etag,
            status_code=status_code or _DEFAULT_STATUS_CODES[status],
            message=message,
        )


@runtime_checkable
class DocumentClient(Protocol):
    """Async document database client with ETag-based preconditions."""

    provider: str

    async def read_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> DocumentResponse:
        """Point-read a document by id."""
        ...

    async def create_document(
        self, database_id: str, collection_id: str, document: Dict[str, Any]
    ) -> DocumentResponse:
        """Insert a document; CONFLICT if its id already exists."""
        ...

    async def replace_document(
        self,
        database_id: str,
        collection_id: str,
        document: Dict[str, Any],
        if_match: Optional[str] = None,
    ) -> DocumentResponse:
        """Replace an existing document, optionally only when its ETag equals ``if_match``."""
        ...

    async def upsert_document(
        self, database_id: str, collection_id: str, document: Dict[str, Any]
    ) -> DocumentResponse:
        """Insert or replace a document unconditionally."""
        ...

    async def delete_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        if_match: Optional[str] = None,
    ) -> DocumentResponse:
        """Delete a document, optionally only when its ETag equals ``if_match``."""
        ...

    async def read_database(self, database_id: str) -> DocumentResponse:
        """Report whether a database exists."""
        ...

    async def create_database(self, database_id: str) -> DocumentResponse:
        """Create a database; CONFLICT if it already exists."""
        ...

    async def delete_database(self, database_id: str) -> DocumentResponse:
        """Drop a database and all its collections."""
        ...

    async def read_collection(self, database_id: str, collection_id: str) -> DocumentResponse:
        """Report whether a collection exists."""
        ...

    async def create_collection(self, database_id: str, collection_id: str) -> DocumentResponse:
        """Create a collection; CONFLICT if it already exists."""
        ...
