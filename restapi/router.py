"""Application configuration and router setup."""

import logging

import fastapi
from fastapi.middleware import cors
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from components.core import init_db
from components.core.config import get_settings
from components.core.exceptions import LedgerError
from components.core.logging_config import configure_logging
from components.core.schemas import ErrorResponse
from restapi.endpoints import admin, auth, credits, customers, health_check, payments, reports, user

logger = logging.getLogger(__name__)

TITLE = "AIADA Credit Ledger"
DESCRIPTION = "Credit ledger shared by shops: customers, credits, payments and credit checks"


def create_app() -> fastapi.FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = fastapi.FastAPI(
        title=TITLE,
        description=DESCRIPTION,
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=init_db.lifespan,
    )

    # Initialize database
    init_db.init_db(app)

    # Add CORS middleware
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: fastapi.Request, exc: LedgerError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(title=exc.title, detail=exc.detail).model_dump(),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: fastapi.Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                title="Something went wrong",
                detail="The request could not be completed. Please try again.",
            ).model_dump(),
        )

    # Include routers
    app.include_router(health_check.router)
    app.include_router(auth.router)
    app.include_router(user.router)
    app.include_router(customers.router)
    app.include_router(credits.router)
    app.include_router(payments.router)
    app.include_router(reports.router)
    app.include_router(admin.router)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        openapi_schema = get_openapi(
            title=TITLE,
            version="1.0.0",
            description=DESCRIPTION,
            routes=app.routes,
        )
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi

    return app
