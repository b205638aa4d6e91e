"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import REQUEST_ID_HEADER, error_handler_middleware
from src.api.middleware.latency_logging import RESPONSE_TIME_HEADER, latency_logging_middleware
from src.api.routes import (
    admin_orders,
    bookings,
    checkout,
    courses,
    events,
    health,
    orders,
    profiles,
    webhooks,
)
from src.core.config import get_settings
from src.core.stripe import configure_stripe

API_VERSION = "0.1.0"

# Mounted under /api/v1; health stays unversioned for load balancers
V1_ROUTERS = (
    courses.router,
    events.router,
    bookings.router,
    orders.router,
    checkout.router,
    webhooks.router,
    admin_orders.router,
    profiles.router,
)

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Configure Stripe before serving; log startup and shutdown."""
    settings = get_settings()
    logger.info(
        "Starting %s in %s mode (store currency %s, default locale %s)",
        settings.app_name,
        settings.app_env,
        settings.store_currency,
        settings.default_locale,
    )
    configure_stripe()

    yield
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Build the marketplace API.

    Returns:
        FastAPI: Application with CORS, error handling, access logging and
        all routers mounted.
    """
    settings = get_settings()

    app = FastAPI(
        title="Marketplace API",
        description="Courses, events and digital products marketplace backend",
        version=API_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, RESPONSE_TIME_HEADER],
    )

    # Added last so it wraps the access log and failed requests are timed
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    app.include_router(health.router)

    api_v1_router = APIRouter(prefix="/api/v1")
    for router in V1_ROUTERS:
        api_v1_router.include_router(router)
    app.include_router(api_v1_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
