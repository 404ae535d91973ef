# backend/exceptions.py
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from errors import ErrorType, ERROR_STATUS_MAP

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Tagged error raised by services and rendered by the HTTP layer."""

    def __init__(self, error_type: ErrorType, message: str):
        self.error_type = error_type
        self.message = message
        super().__init__(message)


async def app_exception_handler(_request: Request, exc: AppException) -> JSONResponse:
    """Global handler for AppException - converts to proper HTTP response."""
    status_code = ERROR_STATUS_MAP.get(exc.error_type, 500)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.error_type.value}
    )


async def storage_exception_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database errors that escaped a service are reported as storage outages."""
    logger.error(f"Storage error: {exc}")
    return JSONResponse(
        status_code=ERROR_STATUS_MAP[ErrorType.STORAGE_UNAVAILABLE],
        content={"detail": "Storage unavailable", "error": ErrorType.STORAGE_UNAVAILABLE.value}
    )
