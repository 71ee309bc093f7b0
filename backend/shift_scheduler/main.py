# backend/shift_scheduler/main.py
"""
FastAPI application entry point for the shift scheduler.

This process only serves the HTTP trigger. Timer-driven runs belong to the
separate worker process (``shift_scheduler.worker``).
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .config import Settings, settings
from .constants import APPLICATION_NAME, APPLICATION_VERSION
from .database import async_db
from .database.migrations import DatabaseInitializationError, initialize_database
from .enums import LoggerName, LogSource
from .middleware import ApiKeyMiddleware, ErrorHandlerMiddleware
from .routers import health_routers as health
from .routers import scheduler_routers as scheduler
from .services.logger import configure_logging, get_service_logger

logger = get_service_logger(LoggerName.SYSTEM, LogSource.SYSTEM)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Handle application startup and shutdown"""
    configure_logging(settings.log_level, settings.log_file, settings.log_retention_days)

    logger.info(
        "Starting FastAPI application",
        extra_context={
            "operation": "application_startup",
            "environment": settings.environment,
            "api_host": settings.api_host,
            "api_port": settings.api_port,
        },
    )

    if settings.run_migrations_on_startup:
        try:
            result = initialize_database()
            logger.info(
                f"Database initialized successfully: {result['method']}",
                extra_context={
                    "operation": "database_initialization",
                    "revision": result["current_revision"],
                    "database_url": settings.masked_database_url,
                },
            )
        except DatabaseInitializationError as e:
            logger.error(f"Database initialization failed: {e}", exception=e)
            raise RuntimeError(f"Cannot start application: {e}") from e

    await async_db.initialize()

    if not settings.api_key:
        logger.warning("API key not configured; scheduler endpoints are unauthenticated")

    yield

    logger.info(
        "Shutting down FastAPI application",
        extra_context={"operation": "application_shutdown"},
    )
    await async_db.close()


def create_app(app_settings: Settings = settings) -> FastAPI:
    app = FastAPI(
        title=APPLICATION_NAME,
        version=APPLICATION_VERSION,
        lifespan=lifespan,
    )

    # Added last runs first: errors are caught around authentication
    app.add_middleware(ApiKeyMiddleware, api_key=app_settings.api_key)
    app.add_middleware(
        ErrorHandlerMiddleware,
        debug_mode=app_settings.environment == "development",
    )

    app.include_router(health.router)
    app.include_router(scheduler.router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "shift_scheduler.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )
