"""Unit tests for PostgresDocumentClient with a mocked asyncpg connection."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from common.interfaces.document_client import DocumentClient, DocumentStatus
from dal.postgres import PostgresDocumentClient
from dal.postgres.document_client import quote_ident


class _PgError(Exception):
    """Exception carrying an asyncpg-style SQLSTATE."""

    def __init__(self, message, sqlstate):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.fixture
def mock_conn():
    """Create a mock asyncpg connection."""
    conn = MagicMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="OK")
    return conn


@pytest.fixture
def client(mock_conn):
    """Create a client over the injected connection."""
    return PostgresDocumentClient(db_client=mock_conn)


def test_requires_dsn_or_connection():
    """Construction without a target is a configuration error."""
    with pytest.raises(ValueError):
        PostgresDocumentClient()


def test_satisfies_document_client_protocol(client):
    """The postgres client is a structural DocumentClient."""
    assert isinstance(client, DocumentClient)


def test_quote_ident_escapes_quotes():
    """Identifiers are double-quoted with embedded quotes doubled."""
    assert quote_ident("botdb") == '"botdb"'
    assert quote_ident('we"ird') == '"we""ird"'
    with pytest.raises(ValueError):
        quote_ident("")


@pytest.mark.asyncio
async def test_read_document_found(client, mock_conn):
    """Rows decode into a document and ETag."""
    mock_conn.fetchrow.return_value = {"etag": '"e1"', "body": json.dumps({"id": "k", "data": 1})}

    response = await client.read_document("botdb", "botcollection", "k")

    assert response.status is DocumentStatus.OK
    assert response.document == {"id": "k", "data": 1}
    assert response.etag == '"e1"'
    sql, doc_id = mock_conn.fetchrow.call_args[0]
    assert 'FROM "botdb"."botcollection"' in sql
    assert doc_id == "k"


@pytest.mark.asyncio
async def test_read_document_missing(client, mock_conn):
    """No row is not found."""
    response = await client.read_document("botdb", "botcollection", "k")
    assert response.status is DocumentStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_create_document_conflict_when_row_exists(client, mock_conn):
    """ON CONFLICT DO NOTHING returning nothing means the id was taken."""
    mock_conn.fetchval.return_value = None

    response = await client.create_document("db", "coll", {"id": "k"})

    assert response.status is DocumentStatus.CONFLICT
    sql = mock_conn.fetchval.call_args[0][0]
    assert "ON CONFLICT (id) DO NOTHING" in sql


@pytest.mark.asyncio
async def test_create_document_returns_stored_etag(client, mock_conn):
    """The ETag comes back from RETURNING."""
    mock_conn.fetchval.return_value = '"new"'

    response = await client.create_document("db", "coll", {"id": "k", "data": {"a": 1}})

    assert response.status is DocumentStatus.CREATED
    assert response.etag == '"new"'
    args = mock_conn.fetchval.call_args[0]
    assert json.loads(args[3]) == {"id": "k", "data": {"a": 1}}


@pytest.mark.asyncio
async def test_replace_with_if_match_adds_etag_predicate(client, mock_conn):
    """Conditional replaces compare the ETag in the same statement."""
    mock_conn.fetchval.return_value = '"e2"'

    response = await client.replace_document("db", "coll", {"id": "k"}, if_match='"e1"')

    assert response.status is DocumentStatus.OK
    args = mock_conn.fetchval.call_args[0]
    assert "AND etag = $4" in args[0]
    assert args[-1] == '"e1"'


@pytest.mark.asyncio
async def test_replace_stale_etag_is_precondition_failed(client, mock_conn):
    """No updated row with an existing id means the ETag moved."""
    mock_conn.fetchval.side_effect = [None, 1]

    response = await client.replace_document("db", "coll", {"id": "k"}, if_match='"old"')

    assert response.status is DocumentStatus.PRECONDITION_FAILED


@pytest.mark.asyncio
async def test_replace_missing_row_is_not_found(client, mock_conn):
    """No updated row and no existing id means the record is gone."""
    mock_conn.fetchval.side_effect = [None, None]

    response = await client.replace_document("db", "coll", {"id": "k"}, if_match='"old"')

    assert response.status is DocumentStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_without_precondition(client, mock_conn):
    """Unconditional deletes carry only the id."""
    mock_conn.fetchval.return_value = "k"

    response = await client.delete_document("db", "coll", "k")

    assert response.status is DocumentStatus.OK
    args = mock_conn.fetchval.call_args[0]
    assert "etag" not in args[0]
    assert args[1:] == ("k",)


@pytest.mark.asyncio
async def test_create_database_already_exists_maps_to_conflict(client, mock_conn):
    """Duplicate schema SQLSTATE is reported as CONFLICT."""
    mock_conn.execute.side_effect = _PgError('schema "db" already exists', "42P06")

    response = await client.create_database("db")

    assert response.status is DocumentStatus.CONFLICT
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_undefined_table_maps_to_not_found(client, mock_conn):
    """Reads against a missing table are not found."""
    mock_conn.fetchrow.side_effect = _PgError('relation "db.coll" does not exist', "42P01")

    response = await client.read_document("db", "coll", "k")

    assert response.status is DocumentStatus.NOT_FOUND


@pytest.mark.asyncio
async def test_connection_failure_maps_to_error(client, mock_conn):
    """Connectivity failures are errors carrying a 503."""
    mock_conn.fetchval.side_effect = ConnectionRefusedError("connection refused")

    response = await client.upsert_document("db", "coll", {"id": "k"})

    assert response.status is DocumentStatus.ERROR
    assert response.status_code == 503
    assert "connection refused" in response.message


@pytest.mark.asyncio
async def test_collection_existence(client, mock_conn):
    """Existence checks query information_schema."""
    mock_conn.fetchval.return_value = True
    assert (await client.read_collection("db", "coll")).status is DocumentStatus.OK

    mock_conn.fetchval.return_value = False
    assert (await client.read_database("db")).status is DocumentStatus.NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message, sqlstate",
    [
        ('relation "coll" already exists', "42P07"),
        ('duplicate key value violates unique constraint "pg_type_typname_nsp_index"', "23505"),
    ],
)
async def test_create_collection_race_maps_to_conflict(client, mock_conn, message, sqlstate):
    """A concurrent CREATE TABLE that loses the race is reported as CONFLICT."""
    mock_conn.execute.side_effect = _PgError(message, sqlstate)

    response = await client.create_collection("db", "coll")

    assert response.status is DocumentStatus.CONFLICT
    assert response.status_code == 409
