"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Toutes les erreurs renvoyées au client suivent la même enveloppe `{code, message, trace_id,
details}`: validation des entrées (422), épuisement des stratégies d'acquisition (502), dépassement
du délai global (504), limitation de débit (429) et erreurs inattendues (500). Aucune trace de pile
n'est exposée.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hdchart.app.metrics import CHART_REQUESTS
from hdchart.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_GATEWAY_TIMEOUT,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNPROCESSABLE_ENTITY,
)
from hdchart.domain.errors import AllStrategiesExhausted, ChartRequestTimeout

log = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header"}


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
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CHART_UNAVAILABLE = "CHART_UNAVAILABLE"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"


_STATUS_CODES = {
    400: ErrorCodes.BAD_REQUEST,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
    422: ErrorCodes.VALIDATION_ERROR,
    429: ErrorCodes.RATE_LIMITED,
    500: ErrorCodes.INTERNAL_ERROR,
    502: ErrorCodes.CHART_UNAVAILABLE,
    504: ErrorCodes.GATEWAY_TIMEOUT,
}


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
        headers=headers,
    )


def extract_trace_id(request: Request) -> str | None:
    """Identifiant de corrélation: en-tête `X-Trace-ID`, sinon l'id posé par le middleware."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id
    return getattr(request.state, "request_id", None)


def validation_details(exc: RequestValidationError) -> dict[str, list[str]]:
    """Regroupe les messages de validation par champ (`{champ: [messages]}`)."""
    details: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field = ".".join(loc) or "__root__"
        details.setdefault(field, []).append(str(error.get("msg", "invalid value")))
    return details


def rate_limited(message: str, trace_id: str | None = None, retry_after: int | None = None):
    """Réponse 429 avec l'enveloppe standard et l'en-tête `Retry-After`."""
    details = {"retry_after": retry_after} if retry_after else None
    headers = {"Retry-After": str(retry_after)} if retry_after else None
    return create_error_response(
        HTTP_TOO_MANY_REQUESTS, ErrorCodes.RATE_LIMITED, message, trace_id, details, headers
    )


def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTPException (404, 405, ...) with standard envelope."""
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return create_error_response(
        exc.status_code, code, str(exc.detail), extract_trace_id(request)
    )


def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Entrées invalides: 422 avec le détail par champ."""
    CHART_REQUESTS.labels("invalid").inc()
    return create_error_response(
        HTTP_UNPROCESSABLE_ENTITY,
        ErrorCodes.VALIDATION_ERROR,
        "Validation failed",
        extract_trace_id(request),
        validation_details(exc),
    )


def handle_strategies_exhausted(request: Request, exc: AllStrategiesExhausted) -> JSONResponse:
    """Aucune stratégie n'a abouti: 502 avec la cause de chaque tentative."""
    CHART_REQUESTS.labels("exhausted").inc()
    trace_id = extract_trace_id(request)
    log.warning("Chart strategies exhausted", extra={"trace_id": trace_id})
    return create_error_response(
        HTTP_BAD_GATEWAY,
        ErrorCodes.CHART_UNAVAILABLE,
        "Failed to generate chart",
        trace_id,
        exc.to_details(),
    )


def handle_request_timeout(request: Request, exc: ChartRequestTimeout) -> JSONResponse:
    CHART_REQUESTS.labels("timeout").inc()
    return create_error_response(
        HTTP_GATEWAY_TIMEOUT,
        ErrorCodes.GATEWAY_TIMEOUT,
        str(exc),
        extract_trace_id(request),
        {"timeout_s": exc.timeout_s},
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions with standard envelope."""
    trace_id = extract_trace_id(request)
    log.error(
        "Unexpected error occurred",
        extra={"trace_id": trace_id, "exception_type": type(exc).__name__},
        exc_info=True,
    )
    return create_error_response(
        HTTP_INTERNAL_SERVER_ERROR,
        ErrorCodes.INTERNAL_ERROR,
        "An unexpected error occurred",
        trace_id,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Branche les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(AllStrategiesExhausted, handle_strategies_exhausted)
    app.add_exception_handler(ChartRequestTimeout, handle_request_timeout)
    app.add_exception_handler(Exception, handle_generic_exception)
