import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from datamanager.config import settings
from datamanager.database import Base, engine
from datamanager.exception_handlers import register_exception_handlers
from datamanager.middleware.logging import RequestLoggingMiddleware, setup_logging
from datamanager.routes.data_sets import router as data_sets_router
from datamanager.routes.logs import router as logs_router
from datamanager.routes.translations import cultures_router, translations_router
from datamanager.services.webhook_service import webhook_notifier

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.app_name} in {settings.environment} mode")
    if settings.debug:
        # Migrations own the schema outside of debug runs
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    yield
    logger.info("Shutting down the application...")
    await webhook_notifier.drain()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Multi-culture translation data sets with hierarchy composition",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(data_sets_router, prefix="/api/v1")
    app.include_router(translations_router, prefix="/api/v1")
    app.include_router(cultures_router, prefix="/api/v1")
    app.include_router(logs_router, prefix="/api/v1")

    @app.get("/", tags=["Root"])
    async def root():
        return {"name": settings.app_name, "version": settings.app_version}

    @app.get("/health", tags=["Root"])
    async def health():
        return {"status": "ok"}

    if settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
