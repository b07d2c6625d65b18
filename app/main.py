import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.types import ASGIApp

from app.api.main import api_router, root_router
from app.core.access_log import AccessLogMiddleware
from app.core.config import Settings
from app.core.config import settings as default_settings
from app.core.log_config import configure_logging
from app.core.pool import PoolManager

_logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    if not route.tags:
        return route.name
    return f"{route.tags[0]}-{route.name}"


class CitiesAPI(FastAPI):
    """
    FastAPI whose outermost layer is the access log. Sitting outside
    ServerErrorMiddleware, it sees the 500 sent for unhandled exceptions and
    logs after that response went out.
    """

    def build_middleware_stack(self) -> ASGIApp:
        return AccessLogMiddleware(super().build_middleware_stack())


def create_app(
    settings: Settings | None = None, pool: PoolManager | None = None
) -> FastAPI:
    """
    Build the application. The pool is created in the lifespan (or the one
    passed in is used) and closed exactly once on shutdown.
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
        sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.pool = pool or PoolManager(settings.connection_descriptor())
        _logger.info("Server running on port %s", settings.PORT)
        try:
            yield
        finally:
            _logger.info("Closing PostgreSQL pool and exiting...")
            app.state.pool.close()

    app = CitiesAPI(
        title=settings.PROJECT_NAME,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # -----------------------------------------------------------------------
    # Global exception handler: anything the routes did not translate
    # -----------------------------------------------------------------------

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions: log and return 500 with safe message."""
        _logger.exception(
            "Unhandled exception on %s %s", request.method, request.url.path
        )
        detail = "Internal server error"
        if settings.ENVIRONMENT == "local":
            detail = f"Internal server error: {exc}"
        return JSONResponse(status_code=500, content={"detail": detail})

    app.include_router(root_router)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
