import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response, Request, Depends, status
from fastapi.responses import JSONResponse

from app.config import settings
from app.storage import init_db, check_db_health, get_store, MessageStore
from app.logging_utils import setup_logging, RequestLoggingMiddleware, log_submission_data
from app.metrics import record_submission_outcome, get_metrics, get_metrics_content_type
from app.handler import MessageHandler, MalformedBody, Success, InvalidInput, decode_submission
from app.schemas import HealthResponse, SubmitResponse, ErrorResponse


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
    title="Message Collector API",
    description="Collects chat messages posted as JSON and stores them in a relational database",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the database is reachable and the
    Messages table exists, otherwise 503 (Service Unavailable).
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Message Route
# =============================================================================

@app.post(
    "/api/message",
    response_model=SubmitResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Body missing, malformed or with blank fields"},
        500: {"model": ErrorResponse, "description": "Message could not be stored"},
    }
)
async def submit_message(
    request: Request,
    store: MessageStore = Depends(get_store),
):
    """
    Store a chat message.

    Body:
        - groupOrUserName: group or user the message came from
        - messageContent: message text
        - receivedDateTime: ISO-8601 time the message was received
    """
    raw_body = await request.body()
    logger.debug(f"Request body size: {len(raw_body)} bytes")

    try:
        submission = decode_submission(raw_body)
    except MalformedBody as e:
        logger.warning(f"Malformed request body: {e}")
        record_submission_outcome("invalid_input")
        log_submission_data(request, result="invalid_input")
        return _error_response(status.HTTP_400_BAD_REQUEST, str(e))

    outcome = MessageHandler(store, logging.getLogger("app.handler")).submit(submission)

    if isinstance(outcome, Success):
        record_submission_outcome("created")
        log_submission_data(request, result="created", message_id=outcome.message_id)
        return SubmitResponse(message_id=outcome.message_id, message=outcome.message)

    if isinstance(outcome, InvalidInput):
        record_submission_outcome("invalid_input")
        log_submission_data(request, result="invalid_input")
        return _error_response(status.HTTP_400_BAD_REQUEST, outcome.message)

    record_submission_outcome("internal_error")
    log_submission_data(request, result="internal_error")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, outcome.message)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    - http_requests_total: Total HTTP requests by method, path, status
    - message_submissions_total: Submission outcomes by result
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
