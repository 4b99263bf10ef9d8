"""Service error taxonomy: error kinds → HTTP status and client message.

Client errors (400) are raised at the request boundary during validation.
Server errors (500) wrap storage and mail transport failures; their detail is
logged, and only MailTransportError returns it to the caller.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors rendered as flat JSON bodies."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(detail or self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code}


class MissingHeaders(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Missing user_id or conversation_id in headers"


class InvalidBody(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request must include an array of contacts"


class NoRecipients(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "No unique emails to send to."


class StorageError(ServiceError):
    """Store lookup or insert failed for a reason other than a duplicate key."""

    message = "Internal server error"


class InternalError(ServiceError):
    message = "Internal server error"


class MailTransportError(ServiceError):
    """Mail provider rejected a message or could not be reached."""

    message = "Error sending email"

    def to_body(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, "error": self.detail or self.message}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a ServiceError as its JSON body. Server errors are logged with detail."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{exc.code} in {request.url.path}: {exc.detail or exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())
