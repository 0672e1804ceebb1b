"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises typed exceptions (see :mod:`triage_engine.errors`).  Rather
than catching these in every route, we install global handlers that pick
the HTTP status from the exception type.  Every error body has the shape
``{"error": "<message>"}`` so the browser client can show it verbatim.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from triage_engine.errors import (
    InvalidStateError,
    PatientNotFoundError,
    RecoveryError,
    SessionNotFoundError,
    StorageError,
    TriageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# --- SDK exception types and their HTTP status codes ---
# Checked in order; first isinstance match wins.
_STATUS_BY_TYPE: list[tuple[type[Exception], int]] = [
    (ValidationError, 400),
    (PatientNotFoundError, 404),
    (SessionNotFoundError, 404),
    (InvalidStateError, 409),
    (RecoveryError, 500),
    (StorageError, 500),
]


def status_for(exc: Exception) -> int:
    """HTTP status for an SDK exception (500 for anything unmapped)."""
    for exc_type, code in _STATUS_BY_TYPE:
        if isinstance(exc, exc_type):
            return code
    return 500


async def triage_error_handler(request: Request, exc: TriageError) -> JSONResponse:
    """Map any :class:`TriageError` to its status and an ``{error}`` body."""
    status = status_for(exc)
    content: dict = {"error": str(exc)}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field

    if status >= 500:
        logger.error("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc)
    else:
        logger.warning("%s [%d] at %s: %s", type(exc).__name__, status, request.url, exc)
    return JSONResponse(status_code=status, content=content)


async def request_validation_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Malformed request bodies are a client error: 400, not FastAPI's 422."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    # Drop the leading "body" / "query" segment from the location
    loc = [str(part) for part in first.get("loc", ())][1:]
    field = ".".join(loc) or None
    message = first.get("msg", "Invalid request")
    logger.warning("Request validation failed at %s: %s", request.url, errors)
    content: dict = {"error": f"Invalid {field}: {message}" if field else message}
    if field:
        content["field"] = field
    return JSONResponse(status_code=400, content=content)


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"},
    )
