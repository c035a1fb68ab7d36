"""
errors.py - Application error taxonomy
Every failure a route can report is one of these classes. Handlers registered
on the app turn them into {success: false, error} JSON responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map to a fixed HTTP status."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None, details: list | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthenticationError(AppError):
    status_code = 401
    message = "Unauthorized"


class ValidationError(AppError):
    status_code = 400
    message = "Invalid data"


class NotFoundError(AppError):
    status_code = 404
    message = "Not found"


class ConflictError(AppError):
    status_code = 409
    message = "Record already exists"


class UpstreamError(AppError):
    status_code = 502
    message = "Upstream service failed"


class ConfigurationError(AppError):
    status_code = 500
    message = "Server is not configured"


class SchemaMissingError(AppError):
    status_code = 503

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table {table} does not exist. Run the SQL migration to create it.")


def _field_details(errors: list) -> list[dict]:
    """Flatten pydantic error entries into [{field, message}]."""
    details = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = ValidationError(details=_field_details(exc.errors()))
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
