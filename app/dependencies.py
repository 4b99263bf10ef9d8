"""FastAPI dependencies: per-process collaborators stored on app.state.

The lifespan populates app.state; tests swap these out via dependency_overrides.
"""

from fastapi import Request

from app.config import Settings, get_settings
from app.core.accumulator import EmailAccumulator
from app.integrations.base import MailTransport
from app.storage.base import ContactStore


def get_contact_store(request: Request) -> ContactStore:
    """Contact store owned by the application."""
    return request.app.state.contact_store


def get_accumulator(request: Request) -> EmailAccumulator:
    """Recipient accumulator owned by the application."""
    return request.app.state.accumulator


def get_mail_transport(request: Request) -> MailTransport:
    """Outbound mail transport owned by the application."""
    return request.app.state.mail_transport


def get_app_settings() -> Settings:
    return get_settings()
