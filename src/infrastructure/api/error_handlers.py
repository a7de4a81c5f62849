from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.errors import (
    ConflictError,
    EditionError,
    InvalidOperationError,
    InvalidParametersError,
    NotFoundError,
    StorageFailedError,
    TransformFailedError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[EditionError], int] = {
    InvalidParametersError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidOperationError: status.HTTP_409_CONFLICT,
    TransformFailedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StorageFailedError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: EditionError) -> int:
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> FastAPI:

    @app.exception_handler(EditionError)
    async def edition_error_handler(request: Request, exc: EditionError):
        code = status_for(exc)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=code, content={"detail": str(exc), "error": exc.kind})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error", "error": "internal"},
        )

    return app
