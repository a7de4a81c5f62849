from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.error_handlers import register_exception_handlers
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.edition_routes import router as edition_router
from src.infrastructure.logging_config import setup_logging


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(
        title="Gallery Editions",
        version="0.1.0",
        description="""
        ## Gallery Editions API

        Non-destructive editing for photo gallery assets. Every crop, rotation,
        resize or flip renders a new file and records a new numbered edition;
        the ingested original is never modified.

        ### Features
        - **Version Ledger**: every edition of an asset with its cumulative edit history
        - **Edits**: crop, rotate (90/180/270), resize (inside, contain, fill, cover), flip
        - **Preview**: render an edit without saving it
        - **Restore**: make any earlier edition current again
        - **Delete**: remove superseded editions (never the original or the current one)

        ### Error Responses
        Errors carry `detail` and a machine-readable `error` kind:
        - **400 Bad Request**: `invalid_parameters`
        - **404 Not Found**: `not_found`
        - **409 Conflict**: `conflict`, `invalid_operation`
        - **422 Unprocessable Entity**: request validation or `transform_failed`
        - **500 Internal Server Error**: `storage_failed` or unexpected errors
        """,
    )
    add_default_middlewares(app)
    register_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the Gallery Editions API",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "gallery-editions", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(edition_router)
    return app


app = create_app()
