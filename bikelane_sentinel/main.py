import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from bikelane_sentinel.core.config import Settings, get_settings
from bikelane_sentinel.core.exceptions import register_exception_handlers
from bikelane_sentinel.core.logging import configure_logging
from bikelane_sentinel.core.rate_limit import RateLimitMiddleware
from bikelane_sentinel.db.seed import seed_demo_violations
from bikelane_sentinel.db.store import InMemoryViolationStore, ViolationStore
from bikelane_sentinel.routers import cameras, detection, health, violations
from bikelane_sentinel.services.cameras import TrafficCameraService
from bikelane_sentinel.services.inference import InferenceClient, MoondreamClient

logger = logging.getLogger(__name__)


def create_app(
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        inference_client: Optional[InferenceClient] = None,
        violation_store: Optional[ViolationStore] = None,
) -> FastAPI:
    """
    Builds the application and every collaborator it needs.

    Settings are loaded here, not at import time, so a missing
    MOONDREAM_API_KEY stops the process before it starts serving.
    Anything passed in is used as-is and is not closed on shutdown.
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(follow_redirects=True)

    if inference_client is None:
        inference_client = MoondreamClient(
            api_key=settings.MOONDREAM_API_KEY,
            http_client=http_client,
            base_url=settings.MOONDREAM_API_URL,
            timeout=settings.INFERENCE_TIMEOUT_SECONDS,
        )

    if violation_store is None:
        violation_store = InMemoryViolationStore()
        if settings.SEED_DEMO_VIOLATIONS:
            seeded = seed_demo_violations(violation_store)
            logger.info("Seeded %d demo violations", seeded)

    camera_service = TrafficCameraService(
        http_client=http_client,
        catalog_url=settings.CAMERA_CATALOG_URL,
        timeout=settings.CAMERA_TIMEOUT_SECONDS,
        cache_ttl=settings.CAMERA_CACHE_TTL_SECONDS,
    )

    # Define a lifespan context manager to run code on startup and shutdown
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s v%s starting", settings.PROJECT_NAME, settings.VERSION)
        logger.info("Detection endpoint: %s/detect-bike-lane-violations", settings.API_PREFIX)

        yield

        if owns_http_client:
            await http_client.aclose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.inference_client = inference_client
    app.state.violation_store = violation_store
    app.state.camera_service = camera_service

    # Middleware: the last one added runs first, so CORS wraps the rate limiter
    app.add_middleware(
        RateLimitMiddleware,
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        path_prefix=settings.API_PREFIX,
    )
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app)

    # Include the routers to activate the endpoints
    app.include_router(health.router, prefix=settings.API_PREFIX)
    app.include_router(detection.router, prefix=settings.API_PREFIX)
    app.include_router(cameras.router, prefix=settings.API_PREFIX)
    app.include_router(violations.router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        return {"message": "Welcome to the Bike Lane Sentinel API v1.0"}

    return app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "bikelane_sentinel.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
    )


if __name__ == "__main__":
    main()
