"""PostgreSQL async connection pool and contact store.

Contacts live in a single table with a unique constraint on email. Each record
of a batch is inserted by its own autocommitted statement, so a uniqueness
violation on one record never rolls back the others.
"""

import logging
from typing import Sequence

import asyncpg
from asyncpg import Pool

from app.config import get_settings
from app.core.errors import StorageError
from app.models import ContactRecord
from app.storage.base import InsertResult, StoreFailure, finalize_insert

logger = logging.getLogger(__name__)

# Failures that abort a store call. UniqueViolationError is handled per record.
STORAGE_FAILURES = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

INSERT_CONTACT = """
    INSERT INTO contacts (user_id, conversation_id, name, email, company)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING user_id, conversation_id, name, email, company, created_at
"""


class PostgresStorage:
    """PostgreSQL contact store with async connection pool."""

    def __init__(self) -> None:
        """Initialize PostgreSQL storage."""
        self._pool: Pool | None = None

    async def connect(self) -> None:
        """Create connection pool and connect to PostgreSQL.

        Raises on connectivity failure; the application must not start without it.
        """
        settings = get_settings()
        self._pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.postgres_pool_min_size,
            max_size=settings.postgres_pool_max_size,
        )
        logger.info("Postgres pool connected")

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> Pool:
        """Get connection pool. Raises if not connected."""
        if self._pool is None:
            raise RuntimeError("Postgres not connected. Call connect() first.")
        return self._pool

    async def create_tables(self) -> None:
        """Create the contacts table if missing."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS contacts (
                    id BIGSERIAL PRIMARY KEY,
                    user_id TEXT,
                    conversation_id TEXT,
                    name TEXT,
                    email TEXT NOT NULL UNIQUE,
                    company TEXT,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
                CREATE INDEX IF NOT EXISTS idx_contacts_conversation ON contacts(user_id, conversation_id);
            """)

    async def find_existing(self, emails: set[str]) -> set[str]:
        """Return the subset of emails already stored.

        Args:
            emails: Candidate emails

        Returns:
            Stored emails among the candidates

        Raises:
            StorageError: If the query fails
        """
        if not emails:
            return set()

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT email FROM contacts WHERE email = ANY($1::text[])",
                    list(emails),
                )
        except STORAGE_FAILURES as e:
            raise StorageError(detail=f"contact lookup failed: {e}") from e

        return {row["email"] for row in rows}

    async def insert_batch(self, records: Sequence[ContactRecord]) -> InsertResult:
        """Insert records one statement each, continuing past duplicate emails.

        Args:
            records: Records to insert, in order

        Returns:
            InsertResult; on a storage failure nothing is reported as inserted,
            although rows written before the failure stay committed
        """
        inserted: list[ContactRecord] = []
        rejected = 0

        try:
            async with self.pool.acquire() as conn:
                for record in records:
                    try:
                        row = await conn.fetchrow(
                            INSERT_CONTACT,
                            record.user_id,
                            record.conversation_id,
                            record.name,
                            record.email,
                            record.company,
                        )
                    except asyncpg.UniqueViolationError:
                        rejected += 1
                        continue
                    inserted.append(ContactRecord(**dict(row)))
        except STORAGE_FAILURES as e:
            logger.error(f"Contact batch insert failed after {len(inserted)} row(s): {e}")
            return InsertResult(failure=StoreFailure.STORAGE_ERROR, detail=str(e))

        return finalize_insert(inserted, rejected)

    async def health_check(self) -> bool:
        """Check PostgreSQL connection health."""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("SELECT 1")
            return True
        except Exception:
            return False


# Global Postgres storage instance
postgres_storage = PostgresStorage()
