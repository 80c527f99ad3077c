import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api.v1 import api_router
from .config import get_settings
from .core.container import build_container


def apply_logging_preferences(settings):
    # Outbound request logs only in debug mode
    client_level = logging.DEBUG if settings.debug else logging.WARNING
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(client_level)
    logging.getLogger("httpcore").setLevel(client_level)


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s"
)

apply_logging_preferences(settings)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Economic Newsletter API", version=__version__, environment=settings.environment)
    container = build_container(settings)
    app.state.container = container

    if settings.cron_enabled and not settings.is_test:
        container.scheduler.start()
    else:
        logger.info("Cron jobs disabled", environment=settings.environment)

    yield

    logger.info("Shutting down Economic Newsletter API")
    await container.close()


def create_application() -> FastAPI:
    app = FastAPI(
        title="Economic Newsletter",
        description="Scheduled economic news aggregation, caching and newsletter jobs",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception occurred",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
                "message": str(exc) or "An unexpected error occurred. Please try again later.",
            }
        )

    # Health check at root
    from .api.v1.endpoints import health
    app.include_router(health.router, tags=["health"])

    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "econ_newsletter.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="info",
        access_log=False,
    )
