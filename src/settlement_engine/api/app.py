"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from settlement_engine.api.routes import (
    health_router,
    invoices_router,
    payroll_router,
    projects_router,
    time_entries_router,
)
from settlement_engine.config import get_settings
from settlement_engine.database import dispose_db, get_session, init_db
from settlement_engine.errors import (
    EngineError,
    Forbidden,
    NotFound,
    PartialSettlement,
    SchemaMismatchError,
    ValidationError,
)
from settlement_engine.services.schema_contract import SchemaContract

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[EngineError], int] = {
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationError: 422,
    PartialSettlement: status.HTTP_207_MULTI_STATUS,
    SchemaMismatchError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: EngineError) -> int:
    """HTTP status code for an engine error."""
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup: verify the schema contract once
    init_db()
    async with get_session() as session:
        app.state.schema_report = await SchemaContract().verify(session)
    logger.info("Schema contract v%d verified", app.state.schema_report.schema_version)
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Settlement Engine API",
        description="Time-entry settlement and payroll engine",
        version=settings.engine_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(EngineError)
    async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
        """Map engine errors to status codes; a partial settlement keeps its invoice id."""
        code = status_for(exc)
        if isinstance(exc, PartialSettlement):
            logger.warning("Partial settlement for invoice %s: %s", exc.invoice_id, exc.message)
        return JSONResponse(
            status_code=code,
            content={
                "detail": exc.message,
                "code": exc.code,
                "context": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(time_entries_router, prefix="/api/v1")
    app.include_router(invoices_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(projects_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
