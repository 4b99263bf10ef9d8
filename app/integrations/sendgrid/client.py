"""SendGrid v3 Web API client.

One POST /v3/mail/send per message, Bearer auth. No retry: a failed send
surfaces to the caller as MailTransportError.
"""

import logging
from functools import lru_cache
from typing import Any

import httpx

from app.config import Settings, get_settings
from app.core.errors import MailTransportError
from app.models import OutboundEmail

logger = logging.getLogger(__name__)


class SendGridClient:
    """SendGrid HTTP client."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize SendGrid client.

        Args:
            settings: Settings to use (defaults to cached settings)
            transport: Optional httpx transport, used by tests
        """
        self.settings = settings or get_settings()
        self.api_key = self.settings.sendgrid_api_key
        self.base_url = self.settings.sendgrid_base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._client is None:
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.settings.mail_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def build_payload(message: OutboundEmail) -> dict[str, Any]:
        """Build the mail/send request body for one message."""
        sender: dict[str, str] = {"email": message.from_email}
        if message.from_name:
            sender["name"] = message.from_name
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": sender,
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }

    async def send(self, message: OutboundEmail) -> None:
        """Send one message.

        Raises:
            MailTransportError: On HTTP status or transport errors
        """
        client = await self._get_client()
        try:
            response = await client.post("/v3/mail/send", json=self.build_payload(message))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = f"{e.response.status_code} {e.response.reason_phrase}: {e.response.text}"
            logger.error(f"SendGrid rejected message to {message.to}: {detail}")
            raise MailTransportError(detail=detail) from e
        except httpx.HTTPError as e:
            logger.error(f"SendGrid request for {message.to} failed: {e!r}")
            raise MailTransportError(detail=str(e) or type(e).__name__) from e


@lru_cache()
def get_sendgrid_client() -> SendGridClient:
    """Get SendGrid client instance (lazy init)."""
    return SendGridClient()
