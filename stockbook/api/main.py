"""
FastAPI application factory.

    uvicorn stockbook.api.main:app

Startup migrates the database and opens the connection pool; shutdown closes
the pool. Domain errors are turned into ``ErrorResponse`` bodies by the
handlers in ``api.middleware.error_handler``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockbook import __version__
from stockbook.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from stockbook.api.middleware.error_handler import setup_exception_handlers
from stockbook.api.routes import (
    catalog_router,
    health_router,
    purchases_router,
    stock_history_router,
)
from stockbook.config import Settings, configure_logging, get_logger, get_settings
from stockbook.infrastructure.storage.sqlite import close_pool, get_pool
from stockbook.infrastructure.storage.sqlite.migrations.migrator import run_migrations

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Migrate and open storage on startup; release it on shutdown."""
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "application_starting",
        version=__version__,
        environment=settings.environment,
        db_path=str(settings.storage.db_path),
        strict_stock=settings.reconciler.strict_stock,
    )

    try:
        results = await run_migrations()
        pool = await get_pool()
    except Exception as e:
        logger.error("database_init_failed", error=str(e))
        raise

    logger.info(
        "application_started",
        migrations_applied=len(results),
        pool_size=pool.pool_size,
    )

    yield

    logger.info("application_stopping")
    await close_pool()
    logger.info("application_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI app with middleware, handlers and routers."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Stockbook API",
        description="Purchases, stock levels and stock history",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )

    # Added last runs first: logging wraps error handling
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)

    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)

    for router in (health_router, purchases_router, stock_history_router, catalog_router):
        app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {
            "name": "Stockbook API",
            "version": __version__,
            "docs": "/docs",
        }

    # Plain liveness check for container orchestrators
    @app.get("/health", include_in_schema=False)
    async def root_health() -> dict[str, str]:
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "stockbook.api.main:app",
        host=_settings.api.host,
        port=_settings.api.port,
        reload=_settings.api.debug,
    )
