# app/api/handlers.py
"""
Request middleware and global exception handlers.

Every error leaves the API as `{"detail": ...}` JSON. Core errors that an
endpoint did not translate itself are caught here as a last resort, so a
`CollaborationError` never turns into a bare 500.
"""
import logging
import uuid

import asyncpg
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.services.errors import CollaborationError

logger = logging.getLogger(__name__)

VALIDATION_TEXT = "Missing or invalid fields"


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", "N/A")


# --- Middleware ---
async def request_id_middleware(request: Request, call_next):
    """Tags the request with an X-Request-ID (the caller's, or a new UUID4) and logs start/end."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id

    logger.info(f"RID:{request_id} START {request.method} {request.url.path}")
    try:
        response: Response = await call_next(request)
    except Exception as e:
        logger.error(f"RID:{request_id} Error during {request.method} {request.url.path}: {e}", exc_info=True)
        raise
    response.headers["X-Request-ID"] = request_id
    logger.info(f"RID:{request_id} END {request.method} {request.url.path} -> {response.status_code}")
    return response


async def security_headers_middleware(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


# --- Exception handlers ---
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        f"RID:{_rid(request)} HTTPException {exc.status_code} on {request.method} {request.url.path}: {exc.detail}"
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed request fields are a 400 for every endpoint."""
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"RID:{_rid(request)} Validation error on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": VALIDATION_TEXT, "errors": errors},
    )


async def collaboration_error_handler(request: Request, exc: CollaborationError):
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"RID:{_rid(request)} {type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail()})


async def db_exception_handler(request: Request, exc: asyncpg.PostgresError):
    """Database errors that escaped the SQL layer; logged in full, reported generically."""
    logger.error(
        f"RID:{_rid(request)} Database error on {request.method} {request.url.path}: SQLSTATE={exc.sqlstate} - {exc}",
        exc_info=True,
    )
    if isinstance(exc, asyncpg.exceptions.UniqueViolationError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "A related resource already exists or there is a conflict."},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database error occurred processing your request."},
    )


async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"RID:{_rid(request)} Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


def register(app: FastAPI) -> None:
    """Attach middleware and exception handlers to `app`."""
    # Added last runs first: the request id is assigned before anything else
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CollaborationError, collaboration_error_handler)
    app.add_exception_handler(asyncpg.PostgresError, db_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
