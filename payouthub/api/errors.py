"""Exception handlers rendering every error as ``{success: false, error}``."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import (
    BillingError,
    InvalidPlanError,
    ProviderNotConfiguredError,
    RecordNotFoundError,
    StorageError,
    UpstreamError,
    ValidationError,
    VerificationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ProviderNotConfiguredError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidPlanError, status.HTTP_400_BAD_REQUEST),
    (VerificationError, status.HTTP_400_BAD_REQUEST),
    (RecordNotFoundError, status.HTTP_404_NOT_FOUND),
    (UpstreamError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def error_body(message: str) -> dict:
    return {"success": False, "error": message}


def status_for(exc: BillingError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    elif isinstance(exc, VerificationError):
        logger.warning("Webhook rejected (%s): %s", exc.reason, exc)
    return JSONResponse(status_code=status_code, content=error_body(str(exc)))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Requisição inválida"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillingError, billing_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


__all__ = ["error_body", "register_exception_handlers", "status_for"]
