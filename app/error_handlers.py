"""Maps every raised error to a status code and a structured JSON body."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.errors import AppError, ValidationFailure

logger = logging.getLogger("account_service")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class StructuredError:
    """Error body sent to clients. Key order is part of the contract."""

    path: str
    message: str
    validation_errors: dict[str, str] | None = None
    timestamp: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"path": self.path, "timestamp": self.timestamp, "message": self.message}
        if self.validation_errors is not None:
            body["validationErrors"] = self.validation_errors
        return body


def error_response(
    request: Request, status_code: int, message: str, validation_errors: dict[str, str] | None = None
) -> JSONResponse:
    """Build the JSON response for a failed request."""
    error = StructuredError(path=request.url.path, message=message, validation_errors=validation_errors)
    return JSONResponse(status_code=status_code, content=error.to_dict())


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    validation_errors = exc.validation_errors if isinstance(exc, ValidationFailure) else None
    return error_response(request, int(exc.status), exc.message, validation_errors)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies and params in the same shape as rule failures."""
    validation_errors: dict[str, str] = {}
    for error in exc.errors():
        loc = error.get("loc") or ("body",)
        name = str(loc[-1]) if len(loc) > 1 else str(loc[0])
        validation_errors.setdefault(name, error.get("msg", "Invalid value"))
    return error_response(request, 400, ValidationFailure.message, validation_errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(request, exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, 500, AppError.message)


def register_error_handlers(app: FastAPI) -> None:
    """Attach all error handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
