"""
Domain error taxonomy and the global exception handlers that render it.

Services raise the typed errors below; the handlers turn them into JSON
``{"message": ...}`` bodies and make sure no stack trace or driver detail
ever reaches a client.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class SweetShopError(Exception):
    """Base class for every error that maps onto an HTTP response."""

    status_code = 500
    message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        return {"message": self.message}


class ValidationFailed(SweetShopError):
    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        super().__init__()
        self.errors = errors

    def to_content(self) -> dict[str, Any]:
        return {"errors": self.errors}


class Unauthenticated(SweetShopError):
    status_code = 401
    message = "Authentication required"


class Forbidden(SweetShopError):
    status_code = 403
    message = "Admin access required"


class NotFound(SweetShopError):
    status_code = 404
    message = "Not found"


class AlreadyExists(SweetShopError):
    status_code = 400
    message = "Already exists"


class InsufficientStock(SweetShopError):
    status_code = 400
    message = "Insufficient quantity in stock"

    def __init__(self, available: int) -> None:
        super().__init__()
        self.available = available

    def to_content(self) -> dict[str, Any]:
        return {"message": self.message, "available": self.available}


class InvalidQuantity(SweetShopError):
    status_code = 400
    message = "Valid quantity is required"


class StockLimitExceeded(SweetShopError):
    status_code = 400
    message = "Stock level would exceed the maximum"

    def __init__(self, maximum: int) -> None:
        super().__init__()
        self.maximum = maximum

    def to_content(self) -> dict[str, Any]:
        return {"message": self.message, "maximum": self.maximum}


class InternalError(SweetShopError):
    status_code = 500
    message = "Server error"


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{field, message, location}`` entries."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        location = loc[0] if loc else "body"
        field = ".".join(loc[1:]) or location
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message, "location": location})
    return errors


async def _sweetshop_error_handler(_request: Request, exc: SweetShopError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
        headers=headers,
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return await _sweetshop_error_handler(request, ValidationFailed(_field_errors(exc)))


async def _http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=InternalError.status_code,
        content=InternalError().to_content(),
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=InternalError.status_code,
        content=InternalError().to_content(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(SweetShopError, _sweetshop_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
