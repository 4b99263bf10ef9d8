"""Postgres contact store tests against a fake asyncpg pool."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import asyncpg
import pytest

from app.core.errors import StorageError
from app.models import ContactRecord
from app.storage.base import StoreFailure
from app.storage.postgres import PostgresStorage

pytestmark = pytest.mark.asyncio


class FakeConnection:
    """Connection emulating a contacts table with a unique email column."""

    def __init__(self, emails: set[str] | None = None) -> None:
        self.emails = set(emails or ())
        self.fail_on: dict[str, Exception] = {}
        self.lookup_error: Exception | None = None
        self.queries: list[str] = []

    async def fetch(self, query, emails):
        self.queries.append(query)
        if self.lookup_error:
            raise self.lookup_error
        return [{"email": email} for email in emails if email in self.emails]

    async def fetchrow(self, query, user_id, conversation_id, name, email, company):
        self.queries.append(query)
        if email in self.fail_on:
            raise self.fail_on[email]
        if email in self.emails:
            raise asyncpg.UniqueViolationError(
                'duplicate key value violates unique constraint "contacts_email_key"'
            )
        self.emails.add(email)
        return {
            "user_id": user_id,
            "conversation_id": conversation_id,
            "name": name,
            "email": email,
            "company": company,
            "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        }

    async def execute(self, query):
        self.queries.append(query)
        return "SELECT 1"


class FakePool:
    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


def make_storage(conn: FakeConnection) -> PostgresStorage:
    storage = PostgresStorage()
    storage._pool = FakePool(conn)
    return storage


def make_record(email: str) -> ContactRecord:
    return ContactRecord(user_id="user-1", conversation_id="conv-1", email=email, name="N")


async def test_find_existing_returns_stored_subset():
    storage = make_storage(FakeConnection({"a@x.com", "b@x.com"}))

    assert await storage.find_existing({"a@x.com", "c@x.com"}) == {"a@x.com"}


async def test_find_existing_empty_input_skips_query():
    storage = PostgresStorage()  # not connected; an empty lookup must not need the pool

    assert await storage.find_existing(set()) == set()


async def test_find_existing_failure_raises_storage_error():
    conn = FakeConnection()
    conn.lookup_error = OSError("connection refused")
    storage = make_storage(conn)

    with pytest.raises(StorageError) as exc_info:
        await storage.find_existing({"a@x.com"})

    assert "connection refused" in exc_info.value.detail


async def test_insert_batch_continues_past_duplicates():
    conn = FakeConnection({"b@x.com"})
    storage = make_storage(conn)

    result = await storage.insert_batch(
        [make_record("a@x.com"), make_record("b@x.com"), make_record("c@x.com")]
    )

    assert result.ok
    assert [r.email for r in result.inserted] == ["a@x.com", "c@x.com"]
    assert result.rejected == 1
    assert result.inserted[0].created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert conn.emails == {"a@x.com", "b@x.com", "c@x.com"}


async def test_insert_batch_all_duplicates_is_duplicate_key():
    storage = make_storage(FakeConnection({"a@x.com"}))

    result = await storage.insert_batch([make_record("a@x.com"), make_record("a@x.com")])

    assert result.failure is StoreFailure.DUPLICATE_KEY
    assert result.inserted == []
    assert result.rejected == 2


async def test_insert_batch_storage_failure_reports_nothing_inserted():
    conn = FakeConnection()
    conn.fail_on["b@x.com"] = asyncpg.NotNullViolationError('null value in column "email"')
    storage = make_storage(conn)

    result = await storage.insert_batch(
        [make_record("a@x.com"), make_record("b@x.com"), make_record("c@x.com")]
    )

    assert result.failure is StoreFailure.STORAGE_ERROR
    assert result.inserted == []
    # Rows before the failure stay committed; the call is not atomic
    assert "a@x.com" in conn.emails
    assert "c@x.com" not in conn.emails


async def test_insert_batch_connection_loss():
    conn = FakeConnection()
    conn.fail_on["a@x.com"] = OSError("connection reset by peer")
    storage = make_storage(conn)

    result = await storage.insert_batch([make_record("a@x.com")])

    assert result.failure is StoreFailure.STORAGE_ERROR
    assert "connection reset" in result.detail


async def test_health_check():
    storage = make_storage(FakeConnection())

    assert await storage.health_check() is True
    assert await PostgresStorage().health_check() is False


async def test_pool_required_before_use():
    with pytest.raises(RuntimeError):
        PostgresStorage().pool


async def test_create_tables_has_unbounded_identifier_columns():
    conn = FakeConnection()
    storage = make_storage(conn)

    await storage.create_tables()

    ddl = conn.queries[0]
    assert "VARCHAR" not in ddl.upper()
    assert "user_id TEXT," in ddl
    assert "conversation_id TEXT," in ddl
