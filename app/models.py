"""Pydantic v2 models for data boundaries."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class CandidateContact(BaseModel):
    """Contact as submitted by a client in a batch.

    Unknown fields are ignored; only email is required.
    """

    model_config = ConfigDict(extra="ignore")

    email: str = Field(..., min_length=1, description="Email address (no normalization applied)")
    name: str | None = Field(default=None, description="Display name")
    company: str | None = Field(default=None, description="Company name")


class SubmitContactsRequest(BaseModel):
    """Body of POST /get-unique-emails."""

    contacts: list[CandidateContact] = Field(..., min_length=1, description="Batch of candidates")


class ContactRecord(BaseModel):
    """Stored contact record. Email is unique across the store."""

    user_id: str = Field(..., description="Origin user identifier")
    conversation_id: str = Field(..., description="Origin conversation identifier")
    name: str | None = Field(default=None, description="Display name")
    email: str = Field(..., description="Email address (unique, case-sensitive)")
    company: str | None = Field(default=None, description="Company name")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Insertion time",
    )

    @classmethod
    def from_candidate(
        cls, candidate: CandidateContact, user_id: str, conversation_id: str
    ) -> "ContactRecord":
        """Attach batch identifiers to a submitted candidate."""
        return cls(
            user_id=user_id,
            conversation_id=conversation_id,
            name=candidate.name,
            email=candidate.email,
            company=candidate.company,
        )


class InsertedContact(BaseModel):
    """Projection of an inserted record returned to the client."""

    name: str | None = None
    email: str
    company: str | None = None


class BroadcastRequest(BaseModel):
    """Body of POST /send-email."""

    subject: str = Field(..., min_length=1, description="Email subject")
    text: str = Field(..., min_length=1, description="Email body, sent as plain text and HTML")


class OutboundEmail(BaseModel):
    """One message handed to the mail transport."""

    model_config = ConfigDict(strict=True)

    to: str = Field(..., description="Recipient address (lower-cased)")
    from_email: str = Field(..., description="Sender address")
    from_name: str | None = Field(default=None, description="Sender display name")
    subject: str
    text: str
    html: str
