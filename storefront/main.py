"""
Orders Microservice

Turns client carts into priced, stock-checked orders and serves them back.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import subprocess

from storefront.api.errors import register_error_handlers
from storefront.api.routes import admin_router, router as orders_router
from storefront.core import RequestLoggingMiddleware, ServiceHealth, get_logger, setup_logging
from storefront.core_settings import Settings, get_settings
from storefront.infrastructure.db import create_db_engine, create_session_factory, init_models

PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = get_logger(__name__)


def run_migrations() -> None:
    logger.info("Running database migrations")
    result = subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        logger.warning(f"Migration output: {result.stderr}")
    else:
        logger.info("Database migrations completed")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    setup_logging(
        service_name=settings.SERVICE_NAME,
        level=settings.LOG_LEVEL,
        environment=settings.ENVIRONMENT,
        version=settings.SERVICE_VERSION,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.SERVICE_NAME} version {settings.SERVICE_VERSION}")

        if settings.RUN_MIGRATIONS:
            run_migrations()

        engine = create_db_engine(settings)
        try:
            init_models(engine)
            logger.info("Database models initialized")
        except Exception:
            logger.error("Failed to initialize database models", exc_info=True)
            engine.dispose()
            raise

        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        logger.info(
            f"{settings.SERVICE_NAME} started successfully",
            extra={'extra_fields': {'track_stock': settings.TRACK_STOCK}},
        )

        yield

        logger.info(f"Shutting down {settings.SERVICE_NAME}")
        engine.dispose()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="Order creation and cart consistency service",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    health_service = ServiceHealth(settings.SERVICE_NAME, settings.SERVICE_VERSION)
    app.include_router(health_service.create_health_router())
    app.include_router(orders_router)
    app.include_router(admin_router)

    @app.get("/")
    async def root():
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "status": "running",
            "docs": "/api/docs",
        }

    return app
