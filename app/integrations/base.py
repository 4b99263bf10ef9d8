"""Mail transport protocol interface."""

from typing import Protocol

from app.models import OutboundEmail


class MailTransport(Protocol):
    """Protocol for outbound mail providers."""

    async def send(self, message: OutboundEmail) -> None:
        """Send a single message.

        Args:
            message: Message to deliver

        Raises:
            MailTransportError: If the provider rejects the message or is unreachable
        """
        ...
