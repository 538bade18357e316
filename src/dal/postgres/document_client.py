"""PostgreSQL implementation of the document client contract.

A logical database maps to a Postgres schema and a collection to a table:

    CREATE TABLE "<database>"."<collection>" (
        id TEXT PRIMARY KEY,
        etag TEXT NOT NULL,
        body JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )

ETag preconditions are evaluated in the same statement as the write
(``WHERE id = $1 AND etag = $n``), so the compare-and-swap is atomic per row.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4

import asyncpg

from common.interfaces.document_client import DocumentResponse, DocumentStatus
from dal.error_classification import log_classified_error

logger = logging.getLogger(__name__)

_CATEGORY_STATUS = {
    "conflict": DocumentStatus.CONFLICT,
    "not_found": DocumentStatus.NOT_FOUND,
}


def quote_ident(name: str) -> str:
    """Quote a Postgres identifier."""
    if not name or "\x00" in name:
        raise ValueError(f"Invalid identifier: {name!r}")
    return '"' + name.replace('"', '""') + '"'


def _decode_body(raw: Any) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        return json.loads(raw)
    return dict(raw)


class PostgresDocumentClient:
    """DocumentClient backed by asyncpg."""

    provider = "postgres"

    def __init__(
        self,
        dsn: Optional[str] = None,
        db_client: Any = None,
        *,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: float = 30,
    ):
        """Initialize with a DSN, or an injected connection for testing."""
        if dsn is None and db_client is None:
            raise ValueError("PostgresDocumentClient requires a dsn or a db_client.")
        self.dsn = dsn
        self.db = db_client
        self._pool: Optional[asyncpg.Pool] = None
        self._pool_kwargs = {
            "min_size": min_size,
            "max_size": max_size,
            "command_timeout": command_timeout,
            "server_settings": {"application_name": "bot_state_store"},
        }

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(self.dsn, **self._pool_kwargs)
            logger.info("Bot-state connection pool established")
        return self._pool

    @asynccontextmanager
    async def _get_connection(self):
        """Get connection from injected client or the pool."""
        if self.db is not None:
            yield self.db
            return
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            yield conn

    async def close(self) -> None:
        """Close the connection pool if one was created."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _run(
        self, operation: str, work: Callable[[Any], Awaitable[DocumentResponse]]
    ) -> DocumentResponse:
        try:
            async with self._get_connection() as conn:
                return await work(conn)
        except Exception as exc:
            info = log_classified_error(self.provider, operation, exc)
            status = _CATEGORY_STATUS.get(info.category, DocumentStatus.ERROR)
            return DocumentResponse.of(status, status_code=info.status_code, message=str(exc))

    @staticmethod
    def _table(database_id: str, collection_id: str) -> str:
        return f"{quote_ident(database_id)}.{quote_ident(collection_id)}"

    @staticmethod
    def _new_etag() -> str:
        return f'"{uuid4().hex}"'

    async def _exists(self, conn: Any, table: str, document_id: str) -> bool:
        return bool(await conn.fetchval(f"SELECT 1 FROM {table} WHERE id = $1", document_id))

    async def read_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> DocumentResponse:
        """Point-read a document by id."""
        table = self._table(database_id, collection_id)

        async def _work(conn):
            row = await conn.fetchrow(f"SELECT etag, body FROM {table} WHERE id = $1", document_id)
            if row is None:
                return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=document_id)
            return DocumentResponse.of(
                DocumentStatus.OK, document=_decode_body(row["body"]), etag=row["etag"]
            )

        return await self._run("read_document", _work)

    async def create_document(
        self, database_id: str, collection_id: str, document: Dict[str, Any]
    ) -> DocumentResponse:
        """Insert a document; CONFLICT if its id already exists."""
        table = self._table(database_id, collection_id)
        etag = self._new_etag()

        async def _work(conn):
            stored = await conn.fetchval(
                f"""
                INSERT INTO {table} (id, etag, body, updated_at)
                VALUES ($1, $2, $3::jsonb, NOW())
                ON CONFLICT (id) DO NOTHING
                RETURNING etag
                """,
                document["id"],
                etag,
                json.dumps(document),
            )
            if stored is None:
                return DocumentResponse.of(
                    DocumentStatus.CONFLICT, message=f"Document {document['id']} already exists"
                )
            return DocumentResponse.of(DocumentStatus.CREATED, document=document, etag=stored)

        return await self._run("create_document", _work)

    async def replace_document(
        self,
        database_id: str,
        collection_id: str,
        document: Dict[str, Any],
        if_match: Optional[str] = None,
    ) -> DocumentResponse:
        """Replace an existing document, honoring an optional ETag precondition."""
        table = self._table(database_id, collection_id)
        etag = self._new_etag()

        async def _work(conn):
            sql = f"""
                UPDATE {table}
                SET etag = $2, body = $3::jsonb, updated_at = NOW()
                WHERE id = $1
            """
            params = [document["id"], etag, json.dumps(document)]
            if if_match is not None:
                sql += " AND etag = $4"
                params.append(if_match)
            stored = await conn.fetchval(sql + " RETURNING etag", *params)
            if stored is not None:
                return DocumentResponse.of(DocumentStatus.OK, document=document, etag=stored)
            if if_match is not None and await self._exists(conn, table, document["id"]):
                return DocumentResponse.of(
                    DocumentStatus.PRECONDITION_FAILED, message="ETag mismatch"
                )
            return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=document["id"])

        return await self._run("replace_document", _work)

    async def upsert_document(
        self, database_id: str, collection_id: str, document: Dict[str, Any]
    ) -> DocumentResponse:
        """Insert or replace a document unconditionally."""
        table = self._table(database_id, collection_id)
        etag = self._new_etag()

        async def _work(conn):
            stored = await conn.fetchval(
                f"""
                INSERT INTO {table} (id, etag, body, updated_at)
                VALUES ($1, $2, $3::jsonb, NOW())
                ON CONFLICT (id) DO UPDATE SET
                    etag = EXCLUDED.etag,
                    body = EXCLUDED.body,
                    updated_at = NOW()
                RETURNING etag
                """,
                document["id"],
                etag,
                json.dumps(document),
            )
            return DocumentResponse.of(DocumentStatus.OK, document=document, etag=stored)

        return await self._run("upsert_document", _work)

    async def delete_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        if_match: Optional[str] = None,
    ) -> DocumentResponse:
        """Delete a document, honoring an optional ETag precondition."""
        table = self._table(database_id, collection_id)

        async def _work(conn):
            sql = f"DELETE FROM {table} WHERE id = $1"
            params = [document_id]
            if if_match is not None:
                sql += " AND etag = $2"
                params.append(if_match)
            deleted = await conn.fetchval(sql + " RETURNING id", *params)
            if deleted is not None:
                return DocumentResponse.of(DocumentStatus.OK, status_code=204)
            if if_match is not None and await self._exists(conn, table, document_id):
                return DocumentResponse.of(
                    DocumentStatus.PRECONDITION_FAILED, message="ETag mismatch"
                )
            return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=document_id)

        return await self._run("delete_document", _work)

    async def read_database(self, database_id: str) -> DocumentResponse:
        """Report whether the schema for a database exists."""

        async def _work(conn):
            exists = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.schemata WHERE schema_name = $1
                )
                """,
                database_id,
            )
            if exists:
                return DocumentResponse.of(DocumentStatus.OK)
            return DocumentResponse.of(DocumentStatus.NOT_FOUND, message=database_id)

        return await self._run("read_database", _work)

    async def create_database(self, database_id: str) -> DocumentResponse:
        """Create the schema; CONFLICT (via SQLSTATE 42P06) if it already exists."""
        schema = quote_ident(database_id)

        async def _work(conn):
            await conn.execute(f"CREATE SCHEMA {schema}")
            logger.info("Created bot-state schema %s", database_id)
            return DocumentResponse.of(DocumentStatus.CREATED)

        return await self._run("create_database", _work)

    async def delete_database(self, database_id: str) -> DocumentResponse:
        """Drop the schema and every collection in it."""
        schema = quote_ident(database_id)

        async def _work(conn):
            await conn.execute(f"DROP SCHEMA {schema} CASCADE")
            logger.info("Dropped bot-state schema %s", database_id)
            return DocumentResponse.of(DocumentStatus.OK, status_code=204)

        return await self._run("delete_database", _work)

    async def read_collection(self, database_id: str, collection_id: str) -> DocumentResponse:
        """Report whether the table for a collection exists."""

        async def _work(conn):
            exists = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT FROM information_schema.tables
                    WHERE table_schema = $1 AND table_name = $2
                )
                """,
                database_id,
                collection_id,
            )
            if exists:
                return DocumentResponse.of(DocumentStatus.OK)
            return DocumentResponse.of(
                DocumentStatus.NOT_FOUND, message=f"{database_id}/{collection_id}"
            )

        return await self._run("read_collection", _work)

    async def create_collection(self, database_id: str, collection_id: str) -> DocumentResponse:
        """Create the table; CONFLICT (via SQLSTATE 42P07) if it already exists."""
        table = self._table(database_id, collection_id)

        async def _work(conn):
            await conn.execute(
                f"""
                CREATE TABLE {table} (
                    id TEXT PRIMARY KEY,
                    etag TEXT NOT NULL,
                    body JSONB NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            logger.info("Created bot-state table %s.%s", database_id, collection_id)
            return DocumentResponse.of(DocumentStatus.CREATED)

        return await self._run("create_collection", _work)
