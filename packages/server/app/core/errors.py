"""
Service error taxonomy and its HTTP rendering.

Services raise these; routers re-raise once with an operation prefix, and
the handler installed by ``install_error_handlers`` turns them into
plain-text responses.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

log = structlog.get_logger()


class ServiceError(Exception):
    """Base for every error surfaced by the service layer."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return f"{type(self).__name__}: {self.message}"


class ValidationError(ServiceError):
    """Malformed or missing input, checked before any write."""

    status_code = 400

    def __str__(self) -> str:
        return self.message


class NotFoundError(ServiceError):
    """A referenced id does not resolve. Rendered as 500 on the wire."""


class PersistenceError(ServiceError):
    """The underlying store rejected a read or write."""


class PartialFailure(ServiceError):
    """A bulk operation whose sub-operations failed; carries both outcomes."""

    def __init__(self, message: str, succeeded: list[Any], failed: list[tuple[str, str]]):
        super().__init__(message)
        self.succeeded = succeeded
        self.failed = failed


def wrap(prefix: str, exc: ServiceError) -> ServiceError:
    """Re-raise ``exc`` at the transport boundary with an operation prefix.

    Validation errors pass through untouched so their 400 body stays exact.
    """
    if isinstance(exc, ValidationError):
        return exc
    return ServiceError(f"{prefix}: {exc}", status_code=exc.status_code)


def parse_id(value: str | None) -> uuid.UUID:
    """Parse a path/body identifier, raising ``ValidationError`` when malformed."""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError("Invalid ID format")


def lookup_id(value: str | None) -> uuid.UUID:
    """Parse an identifier for a read. A malformed id resolves to nothing."""
    try:
        return parse_id(value)
    except ValidationError as exc:
        raise NotFoundError(exc.message) from exc


# 400 bodies for requests whose JSON does not match the route's schema,
# by last path segment first, then by resource prefix
INVALID_BODY_BY_ACTION = {
    "addMessage": "Invalid message body",
}
INVALID_BODY_BY_RESOURCE = {
    "notification": "Invalid notification body",
    "subscription": "Invalid subscription body",
    "messaging": "Invalid message body",
    "thread": "Invalid thread body",
    "chat": "Invalid chat body",
    "fanout": "Invalid content event",
}


def invalid_body_message(path: str) -> str:
    segments = path.strip("/").split("/")
    if segments[-1] in INVALID_BODY_BY_ACTION:
        return INVALID_BODY_BY_ACTION[segments[-1]]
    return INVALID_BODY_BY_RESOURCE.get(segments[0], "Invalid request")


async def _service_error_handler(request: Request, exc: ServiceError) -> PlainTextResponse:
    if exc.status_code >= 500:
        log.warning(
            "request.failed",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> PlainTextResponse:
    errors = exc.errors()
    if all(tuple(err["loc"])[:1] == ("body",) for err in errors):
        message = invalid_body_message(request.url.path)
    else:
        message = "Invalid request"
    log.info("request.invalid", path=request.url.path, errors=len(errors))
    return PlainTextResponse(message, status_code=400)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
