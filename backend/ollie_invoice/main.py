"""
FastAPI application entry point.
Assembles the app with routers, middleware, lifespan handlers, and exception handlers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from ollie_invoice.api.v1.router import api_router
from ollie_invoice.api.v1.endpoints.health import get_health
from ollie_invoice.core.config import settings
from ollie_invoice.core.exceptions import setup_exception_handlers
from ollie_invoice.core.integrations.observability import setup_observability
from ollie_invoice.core.logging import get_logger, setup_logging
from ollie_invoice.core.rate_limit import limiter
from ollie_invoice.db.session import init_db, close_db
from ollie_invoice.deps import di_container
from ollie_invoice.deps.di_container import Container, config_from_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    Initializes DB, DI container, the notification worker and the
    recurring invoice scheduler.
    """
    # Startup
    setup_logging()
    setup_observability()

    await init_db()

    container = Container()
    container.config.from_dict(config_from_settings(settings))
    app.state.container = container
    di_container._container = container

    notification_queue = container.notification_queue()
    notification_queue.start()

    scheduler = container.scheduler()
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Recurring invoice scheduler disabled")

    yield

    # Shutdown
    await scheduler.stop()
    await notification_queue.stop()
    await container.email_client().close()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Invoice lifecycle and recurring billing API",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health", response_model=None, include_in_schema=False)
    async def root_health(request: Request):
        """Root-level health check endpoint."""
        return await get_health(request)

    setup_exception_handlers(app)

    return app


app = create_app()
