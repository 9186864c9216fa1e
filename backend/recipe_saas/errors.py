"""Application error taxonomy and its HTTP mapping.

Every error carries the status code and the message shown to the caller.
Internal details never reach the response body; log them where they are caught.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def body(self) -> dict:
        return {"error": self.message}


class ValidationConflict(AppError):
    status_code = 400
    message = "Request conflicts with existing data"


class InvalidCredentials(ValidationConflict):
    message = "Invalid credentials"


class AuthenticationMissing(AppError):
    status_code = 401
    message = "Access token required"


class AuthenticationInvalid(AppError):
    status_code = 403
    message = "Invalid token"


class NotFound(AppError):
    status_code = 404
    message = "Not found"


class QuotaExceeded(AppError):
    """Soft denial: a normal 200 response flagged with success=false."""

    status_code = 200
    message = "Usage limit reached"

    def body(self) -> dict:
        return {"success": False, "error": self.message}


class InternalFailure(AppError):
    status_code = 500
    message = "Internal server error"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=InternalFailure().body())


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
