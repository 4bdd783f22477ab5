"""
Error Handling Utilities
Consistent ``{"error": message}`` responses for every failure path.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Error interno del servidor"
VALIDATION_ERROR_MESSAGE = "Datos inválidos"


def error_body(detail: Any) -> dict[str, Any]:
    """
    Build the error payload from an exception detail.

    Dict details are passed through when they already carry ``error``.
    """
    if isinstance(detail, dict) and "error" in detail:
        return detail
    return {"error": detail if isinstance(detail, str) else str(detail)}


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Intentional HTTP errors: the detail becomes the ``error`` value."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed requests are reported as 400 without echoing the payload."""
    logger.info(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": VALIDATION_ERROR_MESSAGE},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for FastAPI.

    Logs the full exception internally and returns a sanitized 500; no
    stack trace or driver message reaches the client.
    """
    logger.error(
        "Unhandled error on %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
