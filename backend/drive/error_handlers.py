"""Global exception handlers: every failure leaves the API as structured JSON."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from drive.config import settings
from drive.exceptions import DriveError, ErrorCode, UnexpectedError, ValidationError

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.AUTHENTICATION_FAILED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
}


def error_response(error: DriveError) -> JSONResponse:
    content = {
        "success": False,
        "error": error.error_code.value,
        "message": error.message,
    }
    if error.details:
        content["details"] = error.details
    return JSONResponse(status_code=error.status_code, content=content)


def setup_error_handlers(app: FastAPI) -> None:
    """Register handlers for domain, HTTP, validation and unexpected errors."""

    @app.exception_handler(DriveError)
    async def drive_error_handler(request: Request, exc: DriveError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected (%s): %s", request.method, request.url.path,
                        exc.error_code.value, exc.message)
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _STATUS_CODES.get(exc.status_code, ErrorCode.SERVER_ERROR)
        return error_response(DriveError(str(exc.detail), status_code=exc.status_code, error_code=code))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        field_errors = [
            {
                "field": " -> ".join(str(x) for x in error["loc"]),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return error_response(ValidationError(
            "Request validation failed",
            details={"field_errors": field_errors},
        ))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = f"Unexpected error: {exc}" if settings.DEBUG else "Server error"
        return error_response(UnexpectedError(message))
