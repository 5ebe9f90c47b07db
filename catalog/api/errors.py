"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module traduit les erreurs métier du catalogue (`CatalogError`) et les `HTTPException` en
réponses JSON de forme unique `{code, message, trace_id, details}`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog.core.constants import (
    HTTP_BAD_REQUEST,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
    HTTP_PRECONDITION_FAILED,
    HTTP_PRECONDITION_REQUIRED,
    HTTP_UNPROCESSABLE_ENTITY,
)
from catalog.domain.errors import (
    AlreadyExists,
    CatalogError,
    InvalidCriteria,
    InvalidVersion,
    NotFound,
    OutdatedVersion,
)

log = structlog.get_logger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class ErrorCodes:
    """Standard error codes for the API."""

    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PRECONDITION_REQUIRED = "PRECONDITION_REQUIRED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Statut HTTP par type d'erreur métier
STATUS_BY_ERROR: dict[type[CatalogError], int] = {
    NotFound: HTTP_NOT_FOUND,
    InvalidCriteria: HTTP_BAD_REQUEST,
    AlreadyExists: HTTP_UNPROCESSABLE_ENTITY,
    InvalidVersion: HTTP_PRECONDITION_FAILED,
    OutdatedVersion: HTTP_PRECONDITION_FAILED,
}

_HTTP_CODES = {
    400: ErrorCodes.BAD_REQUEST,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
    422: ErrorCodes.VALIDATION_ERROR,
    428: ErrorCodes.PRECONDITION_REQUIRED,
    500: ErrorCodes.INTERNAL_ERROR,
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {
                "code": envelope.code,
                "message": envelope.message,
                "trace_id": envelope.trace_id,
                **({"details": envelope.details} if envelope.details else {}),
            }
        ),
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or request state."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "trace_id", None)


def status_for(exc: CatalogError) -> int:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return HTTP_INTERNAL_SERVER_ERROR


async def handle_catalog_error(request: Request, exc: CatalogError) -> JSONResponse:
    """Handle catalog errors with standard envelope."""
    status_code = status_for(exc)
    trace_id = extract_trace_id(request)
    log.info(
        "catalog_error",
        code=exc.code,
        error_message=exc.message,
        status_code=status_code,
        trace_id=trace_id,
    )
    return create_error_response(
        status_code=status_code,
        code=exc.code,
        message=exc.message,
        trace_id=trace_id,
        details=exc.details,
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with standard envelope."""
    trace_id = extract_trace_id(request)
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    log.info(
        "http_exception",
        code=code,
        error_message=str(exc.detail),
        status_code=exc.status_code,
        trace_id=trace_id,
    )
    response = create_error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=trace_id,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def precondition_required(message: str) -> HTTPException:
    """Create a 428 Precondition Required error."""
    return HTTPException(status_code=HTTP_PRECONDITION_REQUIRED, detail=message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogError, handle_catalog_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
