"""FastAPI application entry point.

Endpoints: batch contact deduplication, broadcast email, health check.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.core.accumulator import EmailAccumulator
from app.core.errors import InternalError, ServiceError, service_error_handler
from app.core.onboarding import broadcast, parse_submit_request, submit_contacts
from app.dependencies import (
    get_accumulator,
    get_app_settings,
    get_contact_store,
    get_mail_transport,
)
from app.integrations.base import MailTransport
from app.integrations.sendgrid import get_sendgrid_client
from app.storage.base import ContactStore
from app.storage.postgres import postgres_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: connect/disconnect storage and mail client."""
    # Startup. Missing DATABASE_URL or an unreachable database stops the app here.
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    await postgres_storage.connect()
    try:
        await postgres_storage.create_tables()
    except Exception:
        logger.exception("Contacts table creation failed, closing pool")
        await postgres_storage.disconnect()
        raise

    app.state.contact_store = postgres_storage
    app.state.accumulator = EmailAccumulator()
    app.state.mail_transport = get_sendgrid_client()
    logger.info(f"{settings.app_name} started")

    yield

    # Shutdown
    await get_sendgrid_client().close()
    await postgres_storage.disconnect()


app = FastAPI(
    title="Contact Onboarding",
    description="Deduplicates contact batches and broadcasts email to newly onboarded contacts",
    lifespan=lifespan,
)
app.add_exception_handler(ServiceError, service_error_handler)


async def _read_json(request: Request) -> Any:
    """Request body as JSON, or None if absent or malformed."""
    try:
        return await request.json()
    except ValueError:
        return None


@app.post("/get-unique-emails")
async def get_unique_emails(
    request: Request,
    store: ContactStore = Depends(get_contact_store),
    accumulator: EmailAccumulator = Depends(get_accumulator),
) -> JSONResponse:
    """Insert the contacts of a batch whose email is not stored yet.

    Batch identifiers come from the user_id and conversation_id headers.
    """
    # Header names contain underscores, read them verbatim
    user_id = request.headers.get("user_id")
    conversation_id = request.headers.get("conversation_id")
    payload = await _read_json(request)

    batch = parse_submit_request(user_id, conversation_id, payload)

    try:
        result = await submit_contacts(store, accumulator, user_id, conversation_id, batch)
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Error in /get-unique-emails")
        raise InternalError(detail=str(e)) from e

    return JSONResponse(status_code=result.status_code, content=result.to_body())


@app.post("/send-email")
async def send_email(
    request: Request,
    accumulator: EmailAccumulator = Depends(get_accumulator),
    transport: MailTransport = Depends(get_mail_transport),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Broadcast subject/text to every email onboarded since startup."""
    payload = await _read_json(request)
    count = await broadcast(accumulator, transport, settings, payload)

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "message": f"Email has been sent successfully to the provided {count} emails.",
            "recipients": count,
        },
    )


@app.get("/health")
async def health_check(store: ContactStore = Depends(get_contact_store)) -> JSONResponse:
    """Health check endpoint.

    Returns: {status, postgres}
    """
    postgres_healthy = False
    try:
        postgres_healthy = await store.health_check()
    except Exception:
        logger.warning("Store health check raised", exc_info=True)

    overall_status = "healthy" if postgres_healthy else "degraded"

    return JSONResponse(
        status_code=status.HTTP_200_OK if postgres_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": overall_status,
            "postgres": "healthy" if postgres_healthy else "unhealthy",
        },
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Contact Onboarding API", "version": "0.1.0"}


def run() -> None:
    """Run the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
