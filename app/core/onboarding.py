"""Contact onboarding: batch deduplication and broadcast.

Submitting a batch filters candidates against stored emails, inserts the rest
and appends every newly inserted email to the accumulator. A broadcast later
sends one message per accumulated email.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import status
from pydantic import ValidationError

from app.config import Settings
from app.core.accumulator import EmailAccumulator
from app.core.errors import (
    InternalError,
    InvalidBody,
    MailTransportError,
    MissingHeaders,
    NoRecipients,
    StorageError,
)
from app.integrations.base import MailTransport
from app.models import (
    BroadcastRequest,
    ContactRecord,
    InsertedContact,
    OutboundEmail,
    SubmitContactsRequest,
)
from app.storage.base import ContactStore, StoreFailure

logger = logging.getLogger(__name__)

ALREADY_EXIST_MESSAGE = "These emails already exist."
INVALID_CONTACTS_MESSAGE = "Invalid contacts in request body"
MISSING_BROADCAST_FIELDS_MESSAGE = "Missing required fields: subject, text"


@dataclass
class SubmitResult:
    """Outcome of a batch submission, ready to render."""

    status_code: int
    message: str | None = None
    inserted: list[InsertedContact] = field(default_factory=list)
    duplicate_key: bool = False

    def to_body(self) -> Any:
        if self.duplicate_key:
            return []
        if self.status_code == status.HTTP_200_OK:
            return {"message": self.message}
        return {
            "message": self.message,
            "inserted": [contact.model_dump() for contact in self.inserted],
        }


def parse_submit_request(
    user_id: str | None,
    conversation_id: str | None,
    payload: Any,
) -> SubmitContactsRequest:
    """Validate batch headers, then body.

    Raises:
        MissingHeaders: If either header is absent or empty
        InvalidBody: If contacts is missing, empty or malformed
    """
    if not user_id or not conversation_id:
        raise MissingHeaders()

    if not isinstance(payload, dict):
        raise InvalidBody()
    contacts = payload.get("contacts")
    if not isinstance(contacts, list) or not contacts:
        raise InvalidBody()
    try:
        return SubmitContactsRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidBody(INVALID_CONTACTS_MESSAGE, detail=str(e)) from e


async def submit_contacts(
    store: ContactStore,
    accumulator: EmailAccumulator,
    user_id: str,
    conversation_id: str,
    request: SubmitContactsRequest,
) -> SubmitResult:
    """Insert the candidates whose email is not stored yet.

    Duplicates inside the batch are not collapsed; the store's unique constraint
    decides which copy wins.

    Args:
        store: Contact store
        accumulator: Recipient accumulator, appended with inserted emails
        user_id: Batch origin user
        conversation_id: Batch origin conversation
        request: Validated batch

    Returns:
        SubmitResult (200 when nothing is new, 201 otherwise)

    Raises:
        InternalError: If the lookup fails, or the insert fails for a reason
            other than a duplicate key
    """
    incoming = {contact.email for contact in request.contacts}
    try:
        existing = await store.find_existing(incoming)
    except StorageError as e:
        raise InternalError(detail=e.detail) from e

    new_records = [
        ContactRecord.from_candidate(contact, user_id, conversation_id)
        for contact in request.contacts
        if contact.email not in existing
    ]

    if not new_records:
        return SubmitResult(status_code=status.HTTP_200_OK, message=ALREADY_EXIST_MESSAGE)

    result = await store.insert_batch(new_records)

    if result.failure is StoreFailure.DUPLICATE_KEY:
        logger.info(
            f"All {result.rejected} new contact(s) for conversation_id={conversation_id} "
            f"lost the unique email race"
        )
        return SubmitResult(status_code=status.HTTP_201_CREATED, duplicate_key=True)
    if result.failure is StoreFailure.STORAGE_ERROR:
        raise InternalError(detail=result.detail)

    inserted = [
        InsertedContact(name=record.name, email=record.email, company=record.company)
        for record in result.inserted
    ]
    emails = [contact.email for contact in inserted]
    accumulator.extend(emails)

    if result.rejected:
        logger.info(f"Dropped {result.rejected} duplicate contact(s) during insert")
    logger.info(f"Inserted contacts for conversation_id={conversation_id}: {emails}")

    return SubmitResult(
        status_code=status.HTTP_201_CREATED,
        message=f"Unique emails are: {', '.join(emails)}",
        inserted=inserted,
    )


def build_messages(recipients: list[str], request: BroadcastRequest, settings: Settings) -> list[OutboundEmail]:
    """One message per recipient, lower-cased address, text reused verbatim as HTML."""
    return [
        OutboundEmail(
            to=email.lower(),
            from_email=settings.mail_from_email,
            from_name=settings.mail_from_name,
            subject=request.subject,
            text=request.text,
            html=request.text,
        )
        for email in recipients
    ]


async def broadcast(
    accumulator: EmailAccumulator,
    transport: MailTransport,
    settings: Settings,
    payload: Any,
) -> int:
    """Send the given subject/text to every accumulated email.

    All sends run concurrently and are awaited together. Any failed send fails
    the whole broadcast; nothing is retried.

    Returns:
        Number of recipients

    Raises:
        NoRecipients: If nothing has been accumulated (checked before the body)
        InvalidBody: If subject or text is missing
        MailTransportError: If any send fails
    """
    recipients = accumulator.snapshot()
    if not recipients:
        raise NoRecipients()

    if not isinstance(payload, dict):
        raise InvalidBody(MISSING_BROADCAST_FIELDS_MESSAGE)
    try:
        request = BroadcastRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidBody(MISSING_BROADCAST_FIELDS_MESSAGE, detail=str(e)) from e

    messages = build_messages(recipients, request, settings)
    results = await asyncio.gather(
        *(transport.send(message) for message in messages),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        first = failures[0]
        logger.error(f"Broadcast failed: {len(failures)}/{len(messages)} send(s) errored")
        if isinstance(first, MailTransportError):
            raise first
        raise MailTransportError(detail=str(first)) from first

    logger.info(f"Broadcast '{request.subject}' sent to {len(messages)} recipient(s)")
    return len(messages)
