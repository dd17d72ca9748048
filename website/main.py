"""Main FastAPI application module."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.concurrency import run_in_threadpool

from website.api.router import router
from website.content.engine import SyncEngine
from website.core.config import Settings
from website.core.logging import configure_logging, get_logger
from website.middleware.correlation import CorrelationMiddleware
from website.middleware.errors import ErrorHandlingMiddleware, register_exception_handlers
from website.middleware.metrics import MetricsMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the sync engine unless the caller already did, stop what we started."""
    engine: SyncEngine = app.state.engine
    owned = not engine.started
    if owned:
        await run_in_threadpool(engine.start)
    try:
        yield
    finally:
        if owned:
            await run_in_threadpool(engine.stop)


def create_app(
    settings: Optional[Settings] = None, engine: Optional[SyncEngine] = None
) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings, read from the environment if omitted
        engine: Sync engine to serve from, built from ``settings`` if omitted

    Returns:
        The FastAPI application
    """
    settings = settings or Settings()
    engine = engine or SyncEngine.from_settings(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Personal website and blog",
        version=settings.VERSION,
        default_response_class=JSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine

    # Middleware, outermost first (Starlette wraps the last added outermost):
    # 1. Correlation (outermost, adds request ID)
    # 2. Metrics (tracks all requests)
    # 3. Error handling (innermost, handles all errors)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationMiddleware)
    register_exception_handlers(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(router)
    return app


def create_default_app() -> FastAPI:
    """Factory for ``uvicorn --factory website.main:create_default_app``."""
    settings = Settings()
    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
    return create_app(settings)
