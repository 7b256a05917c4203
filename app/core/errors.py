"""Domain error taxonomy and their HTTP mappings.

Services raise these; ``register_error_handlers`` turns them into JSON
``{"error": ...}`` responses so routers never deal with status codes for
domain failures.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class PortalError(Exception):
    """Base class for all messaging / call-signaling failures."""

    status_code: int = 500


class ValidationError(PortalError):
    """Malformed or missing input. Raised before any write happens."""

    status_code = 400


class InvalidSenderError(ValidationError):
    """Message sender is not one of the participant roles."""


class NotFoundError(PortalError):
    """Referenced entity does not exist (usually a stale client cache)."""

    status_code = 404


class StorageError(PortalError):
    """The document store could not be read or written. Transient."""

    status_code = 500


def register_error_handlers(app: FastAPI) -> None:
    """Install exception handlers for every ``PortalError`` subclass."""

    @app.exception_handler(PortalError)
    async def portal_error(request: Request, exc: PortalError) -> JSONResponse:
        if isinstance(exc, StorageError):
            logger.error(
                "storage_failure",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "error_message": str(exc),
                },
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})
