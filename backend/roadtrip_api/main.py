"""
Road Trip Planner Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn roadtrip_api.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │                     FastAPI App                       │
    │                                                       │
    │  Middleware Chain:                                    │
    │  ┌──────────┐ ┌──────────┐ ┌────────────┐ ┌────────┐  │
    │  │ Req ID   │→│ Logging  │→│ Rate Limit │→│GZip/CORS│ │
    │  └──────────┘ └──────────┘ └────────────┘ └────────┘  │
    │                                                       │
    │  Routes:                                              │
    │  /api/auth  /api/users  /api/roadtrips  /api/comments │
    │  /api/reviews  /api/weather  /api/places  /api/route  │
    │  /api/files  /health                                  │
    │                                                       │
    │  Exception Handlers:                                  │
    │  ┌─────────────────────────────────────────────────┐  │
    │  │ RoadTripError → its status │ Validation → 400    │  │
    │  │ anything else → 500                             │  │
    │  └─────────────────────────────────────────────────┘  │
    └───────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report missing configuration (does not abort)
    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from roadtrip_api import __version__
from roadtrip_api.config import settings
from roadtrip_api.database import dispose_engine
from roadtrip_api.exceptions import RoadTripError
from roadtrip_api.middleware.logging import RequestLoggingMiddleware
from roadtrip_api.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from roadtrip_api.middleware.request_id import RequestIDMiddleware, request_id_var
from roadtrip_api.routes import (
    auth,
    comments,
    external,
    files,
    health,
    reviews,
    road_trips,
    users,
)
from roadtrip_api.schemas.common import format_validation_errors

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: 2025-06-14T10:30:00 [INFO] roadtrip.access: GET /api/roadtrips → 200
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every connection/request at INFO
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "cloudinary"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Road Trip Planner Backend %s starting (%s)", __version__, settings.environment)

    # Missing secrets only break the endpoints that need them; the server
    # still starts and answers /health.
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("Configuration incomplete: %s", str(e))

    logger.info("Image storage backend: %s", settings.image_storage_backend)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Road Trip Planner Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # The ContextVar is already reset when the outermost 500 handler runs
    return getattr(request.state, "request_id", None) or request_id_var.get("")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exceptions to `{message, error, requestId}` JSON responses.

    Handler hierarchy:
        RoadTripError (and subclasses) → exc.status_code (400/401/403/404/408/429/500)
        RequestValidationError         → 400 (path/query/body type errors)
        Exception (fallback)           → 500

    500 bodies never expose internals; in development the original message
    is added as `detail`.
    """

    @app.exception_handler(RoadTripError)
    async def handle_app_error(request: Request, exc: RoadTripError):
        rid = _request_id(request)
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        elif exc.status_code != 404:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        content = {"message": exc.message, "error": exc.error_code, "requestId": rid}
        headers = {}
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is not None:
            content["retryAfter"] = retry_after
            headers["Retry-After"] = str(retry_after)
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = _request_id(request)
        message = format_validation_errors(exc.errors())
        logger.info("[%s] Request validation failed: %s", rid, message)
        return JSONResponse(
            status_code=400,
            content={"message": message, "error": "validation_error", "requestId": rid},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        content = {
            "message": "An unexpected error occurred. Please try again later.",
            "error": "internal_server_error",
            "requestId": rid,
        }
        if settings.is_development:
            content["detail"] = str(exc)
        return JSONResponse(status_code=500, content=content)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(rate_limiter: Optional[FixedWindowRateLimiter] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        rate_limiter: Limiter instance for RateLimitMiddleware; tests pass
                      one with a fake clock or a small window.
    """
    app = FastAPI(
        title="Road Trip Planner API",
        description=(
            "Plan, share and discuss road trips: itineraries with route stops and "
            "images, comments, reviews, and cached weather, places and routing lookups."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first. Adding CORS → GZip → RateLimit → Logging → RequestID
    # gives the execution order RequestID → Logging → RateLimit → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    for module in (auth, users, road_trips, comments, reviews, external, files, health):
        app.include_router(module.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
