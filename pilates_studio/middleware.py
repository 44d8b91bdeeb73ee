from __future__ import annotations

import logging
import time
import uuid
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .db import utcnow
from .errors import AuthenticationError, AuthorizationError, InvalidOperationError, NotFoundError

log = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
VALIDATION_MESSAGE = "Se produjeron uno o más errores de validación"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with a short correlation id and logs its outcome and duration."""

    def __init__(self, app, slow_request_ms: int = 3000):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:8]
        request.state.correlation_id = correlation_id
        started = time.perf_counter()
        log.info("[%s] %s %s started", correlation_id, request.method, request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            log.exception(
                "[%s] %s %s failed after %.1f ms", correlation_id, request.method, request.url.path, elapsed
            )
            raise

        elapsed = (time.perf_counter() - started) * 1000
        log.info(
            "[%s] %s %s -> %s in %.1f ms",
            correlation_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
        )
        if elapsed > self.slow_request_ms:
            log.warning("[%s] Slow request %s %s: %.1f ms", correlation_id, request.method, request.url.path, elapsed)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def _body(status_code: int, message: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"status_code": status_code, "message": message}
    body.update(extra)
    body["timestamp"] = utcnow().isoformat()
    return body


def _field_name(loc: tuple) -> str:
    # ("body", "first_name") -> "first_name"; ("query", "zone_id") -> "zone_id"
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header", "cookie")]
    return ".".join(parts) or "request"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        errors.setdefault(_field_name(tuple(err.get("loc", ()))), []).append(err.get("msg", ""))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body(status.HTTP_400_BAD_REQUEST, VALIDATION_MESSAGE, errors=errors),
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_body(status.HTTP_404_NOT_FOUND, "Recurso no encontrado", details=str(exc)),
    )


async def invalid_operation_handler(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body(status.HTTP_400_BAD_REQUEST, "Operación inválida", details=str(exc)),
    )


async def authentication_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=_body(status.HTTP_401_UNAUTHORIZED, "No autorizado", details=str(exc)),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def authorization_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content=_body(status.HTTP_403_FORBIDDEN, "Acceso denegado", details=str(exc)),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", "-")
    log.error("[%s] Unhandled exception: %s", correlation_id, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Ocurrió un error al procesar la solicitud",
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(InvalidOperationError, invalid_operation_handler)
    app.add_exception_handler(AuthenticationError, authentication_handler)
    app.add_exception_handler(AuthorizationError, authorization_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
