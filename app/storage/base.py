"""Contact store protocol and insert outcome.

Stores hold contact records keyed by a unique email. Batch inserts continue past
uniqueness violations; the outcome says which records went in and whether the
call as a whole failed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

from app.models import ContactRecord


class StoreFailure(str, Enum):
    """Call-level failure kinds reported by insert_batch."""

    DUPLICATE_KEY = "DuplicateKey"
    STORAGE_ERROR = "StorageError"


@dataclass
class InsertResult:
    """Outcome of a batch insert.

    inserted: records actually written, in submission order
    rejected: count of records dropped for a uniqueness violation
    failure: set when the call failed as a whole
    """

    inserted: list[ContactRecord] = field(default_factory=list)
    rejected: int = 0
    failure: StoreFailure | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def finalize_insert(inserted: list[ContactRecord], rejected: int) -> InsertResult:
    """Build the outcome of a call that ran to the end.

    A non-empty call where every record hit the unique constraint is reported
    as a call-level duplicate key.
    """
    if rejected and not inserted:
        return InsertResult(
            rejected=rejected,
            failure=StoreFailure.DUPLICATE_KEY,
            detail=f"{rejected} record(s) violated the unique email constraint",
        )
    return InsertResult(inserted=inserted, rejected=rejected)


class ContactStore(Protocol):
    """Protocol for contact stores."""

    async def find_existing(self, emails: set[str]) -> set[str]:
        """Return the subset of emails already stored.

        Args:
            emails: Candidate emails (empty set returns empty set)

        Returns:
            Emails present in storage

        Raises:
            StorageError: If the lookup fails
        """
        ...

    async def insert_batch(self, records: Sequence[ContactRecord]) -> InsertResult:
        """Insert every record, continuing past uniqueness violations.

        Args:
            records: Records to insert, in order

        Returns:
            InsertResult with inserted records and failure kind, if any
        """
        ...

    async def health_check(self) -> bool:
        """Check store health."""
        ...
