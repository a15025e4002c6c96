"""FastAPI application factory and entrypoint."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from blogapi import __version__
from blogapi.api.routes import api_router, root_router
from blogapi.core.boundary import BoundaryResponder, register_exception_handlers
from blogapi.core.config import Settings, settings as default_settings
from blogapi.core.db import create_schema, dispose_engine
from blogapi.core.logging import AppLogger, configure_logging
from blogapi.core.metrics import setup_metrics
from blogapi.core.middleware import AccessLogMiddleware, RequestIDMiddleware

logger = logging.getLogger("blogapi.main")


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    await create_schema()
    try:
        yield
    finally:
        await dispose_engine()


def create_app(settings: Settings | None = None, *, app_logger: AppLogger | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""

    settings = settings or default_settings
    configure_logging(
        settings.log_level,
        log_dir=settings.log_dir,
        retention_days=settings.log_retention_days,
    )
    app_logger = app_logger or AppLogger()

    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.app_logger = app_logger

    # Registered first so it sits innermost, below both logging middlewares.
    register_exception_handlers(
        application,
        BoundaryResponder(app_logger, expose_stack=settings.is_development),
    )

    if settings.metrics_enabled:
        setup_metrics(application)

    application.add_middleware(
        AccessLogMiddleware,
        app_logger=app_logger,
        max_body_bytes=settings.max_logged_body_bytes,
    )
    application.add_middleware(RequestIDMiddleware)

    application.include_router(root_router)
    application.include_router(api_router, prefix=settings.api_prefix)

    return application


app = create_app()

__all__ = ["app", "create_app", "lifespan"]
