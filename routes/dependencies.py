"""
Shared route helpers: request context and error conversion.
"""

from typing import Optional
from fastapi import Header
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError

logger = structlog.get_logger(__name__)


class MissingUserError(AppError):
    """Request has no authenticated user (401)."""

    def __init__(self):
        super().__init__(
            code="UNAUTHENTICATED",
            message="Missing X-User-Id header",
            status_code=401
        )


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Acting user for the request.

    Authentication happens upstream; the gateway forwards the user id.

    Raises:
        MissingUserError: If the header is absent
    """
    if not x_user_id:
        raise MissingUserError()
    return x_user_id


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )
