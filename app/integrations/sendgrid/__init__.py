"""SendGrid mail integration."""

from app.integrations.sendgrid.client import SendGridClient, get_sendgrid_client

__all__ = [
    "SendGridClient",
    "get_sendgrid_client",
]
