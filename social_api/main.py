import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Response, Request, Depends, status
from sqlalchemy.orm import Session

from social_api.config import settings
from social_api.storage import init_db, check_db_health, get_db
from social_api.logging_utils import setup_logging, RequestLoggingMiddleware, log_outcome
from social_api.metrics import record_service_outcome, get_metrics, get_metrics_content_type
from social_api.account_service import AccountService
from social_api.message_service import MessageService
from social_api.results import ServiceResult
from social_api.schemas import (
    AccountCredentials,
    AccountRecord,
    HealthResponse,
    MessageCreate,
    MessageRecord,
    MessageTextUpdate,
)


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Initialize database and create tables
    """
    init_db()
    yield


app = FastAPI(
    title="Social Media API",
    description="Account registration/login and message CRUD",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


def get_account_service(db: Session = Depends(get_db)) -> AccountService:
    return AccountService(db)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db)


def report(request: Request, operation: str, result: ServiceResult) -> None:
    """Record a service outcome in the request log and metrics."""
    log_outcome(request, operation, result.outcome, result.detail)
    record_service_outcome(operation, result.outcome)


def empty_response(status_code: int = status.HTTP_200_OK) -> Response:
    return Response(status_code=status_code)


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and both
    the account and message tables exist. Otherwise returns 503.
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Account Routes
# =============================================================================

@app.post("/register", response_model=AccountRecord)
async def register(
    candidate: AccountCredentials,
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    """
    Register a new account.

    - 200 with the persisted account (including account_id)
    - 400 with an empty body if the username is blank or taken, the
      password is shorter than 4 characters, or the insert failed
    """
    result = service.register_user_account(candidate)
    report(request, "register", result)

    if not result.ok:
        return empty_response(status.HTTP_400_BAD_REQUEST)
    return result.value


@app.post("/login", response_model=AccountRecord)
async def login(
    credentials: AccountCredentials,
    request: Request,
    service: AccountService = Depends(get_account_service),
):
    """
    Log in with an exact username and password match.

    - 200 with the full account record
    - 401 with an empty body when nothing matches
    """
    result = service.login_user_account(credentials)
    report(request, "login", result)

    if not result.ok:
        return empty_response(status.HTTP_401_UNAUTHORIZED)
    return result.value


# =============================================================================
# Message Routes
# =============================================================================

@app.post("/messages", response_model=MessageRecord)
async def create_message(
    candidate: MessageCreate,
    request: Request,
    service: MessageService = Depends(get_message_service),
):
    """
    Create a message.

    - 200 with the persisted message (message_id, time_posted_epoch set)
    - 400 with an empty body if the text is blank or over 255 characters,
      posted_by is not an existing account, or the insert failed
    """
    result = service.create_new_message(candidate)
    report(request, "create_message", result)

    if not result.ok:
        return empty_response(status.HTTP_400_BAD_REQUEST)
    return result.value


@app.get("/messages", response_model=List[MessageRecord])
async def list_messages(
    service: MessageService = Depends(get_message_service),
) -> List[MessageRecord]:
    """All messages, possibly an empty list."""
    messages = service.get_all_messages()
    logger.info(f"GET /messages: returned {len(messages)} messages")
    return messages


@app.get("/messages/{message_id}", response_model=MessageRecord)
async def get_message(
    message_id: int,
    request: Request,
    service: MessageService = Depends(get_message_service),
):
    """The message, or 200 with an empty body if it does not exist."""
    result = service.get_message_by_id(message_id)
    report(request, "get_message", result)

    if not result.ok:
        return empty_response()
    return result.value


@app.delete("/messages/{message_id}", response_model=MessageRecord)
async def delete_message(
    message_id: int,
    request: Request,
    service: MessageService = Depends(get_message_service),
):
    """
    Delete a message.

    Returns the deleted message, or 200 with an empty body if there was
    nothing to delete.
    """
    result = service.delete_message_by_id(message_id)
    report(request, "delete_message", result)

    if not result.ok:
        return empty_response()
    return result.value


@app.patch("/messages/{message_id}", response_model=MessageRecord)
async def update_message(
    message_id: int,
    update: MessageTextUpdate,
    request: Request,
    service: MessageService = Depends(get_message_service),
):
    """
    Replace a message's text.

    - 200 with the updated message
    - 400 with an empty body if the text is invalid or the message does
      not exist
    """
    result = service.update_message_by_id(message_id, update.message_text)
    report(request, "update_message", result)

    if not result.ok:
        return empty_response(status.HTTP_400_BAD_REQUEST)
    return result.value


@app.get("/accounts/{account_id}/messages", response_model=List[MessageRecord])
async def list_account_messages(
    account_id: int,
    service: MessageService = Depends(get_message_service),
) -> List[MessageRecord]:
    """Messages posted by one account, possibly an empty list."""
    messages = service.get_all_messages_by_user(account_id)
    logger.info(f"GET /accounts/{account_id}/messages: returned {len(messages)} messages")
    return messages


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    - http_requests_total: Total HTTP requests by method, path, status
    - service_outcomes_total: Service outcomes by operation and result
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
