"""Exception handlers mapping the error taxonomy onto HTTP responses.

Every error body has the same shape::

    {"error": "VALIDATION_ERROR", "message": "...", "details": {...}}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from commagg_core.primitives.exceptions import (
    InfrastructureError,
    NotFoundError,
    ValidationError,
)

from .exceptions import EnqueueError

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error_code, "message": message, "details": details or {}},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return error_response(
            400, "VALIDATION_ERROR", "Invalid delivery request", exc.errors
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Malformed body on %s %s", request.method, request.url.path)
        return error_response(
            400,
            "VALIDATION_ERROR",
            "request body must be a JSON object",
            {"__root__": [str(err.get("msg", err)) for err in exc.errors()]},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return error_response(404, "NOT_FOUND", str(exc))

    @app.exception_handler(EnqueueError)
    async def handle_enqueue_error(
        request: Request, exc: EnqueueError
    ) -> JSONResponse:
        return error_response(
            500,
            "ENQUEUE_FAILED",
            "Failed to enqueue message",
            {"messageId": exc.message_id, "reason": exc.reason},
        )

    @app.exception_handler(InfrastructureError)
    async def handle_infrastructure_error(
        request: Request, exc: InfrastructureError
    ) -> JSONResponse:
        logger.error("Infrastructure failure on %s: %s", request.url.path, exc)
        return error_response(500, "PERSISTENCE_FAILED", "Could not persist message")

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s", request.url.path)
        return error_response(500, "INTERNAL_ERROR", "Internal server error")
