"""
Natours Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance;
       tests call it with their own Settings and RateLimiter.
Who:   Called by uvicorn to start the server (uvicorn natours.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────────┐
    │                       FastAPI App                           │
    │                                                             │
    │  Middleware (outermost first):                              │
    │  static → security_headers → request_logging* → rate_limit  │
    │         → pipeline (body, cookies, sanitize, hpp, time)     │
    │                                                             │
    │  Route groups:                                              │
    │  /  /api/v1/tours  /api/v1/users  /api/v1/reviews           │
    │  /api/v1/bookings  then the catch-all 404                   │
    │                                                             │
    │  Errors: every path ends in error_handler.global_error_handler
    └─────────────────────────────────────────────────────────────┘
    * NODE_ENV=development only

Lifecycle:
    Startup:   logging, create missing tables
    Shutdown:  close the Redis client (if any), dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from natours import __version__
from natours.config import Settings, settings as default_settings
from natours.database import dispose_engine, init_models
from natours.error_handler import register_exception_handlers
from natours.middleware import build_middleware
from natours.routes import include_route_groups
from natours.services.rate_limiter import RateLimiter, build_rate_limiter
from natours.templating import STATIC_DIR

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Access lines (development only) come from the `natours.access` logger.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifecycle
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    setup_logging(config.log_level)
    logger.info("Natours backend starting (NODE_ENV=%s)", config.node_env)
    logger.info("Middleware: %s", " → ".join(app.state.middleware_names))

    await init_models()
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)

    yield

    logger.info("Natours backend shutting down...")
    redis_client = getattr(app.state.rate_limiter.store, "redis", None)
    if redis_client is not None:
        await redis_client.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:      Configuration; the environment-loaded singleton by default
        rate_limiter:  Injected limiter; built from settings when omitted

    Returns:
        Fully configured FastAPI instance ready to receive requests.
    """
    config = settings or default_settings
    limiter = rate_limiter or build_rate_limiter(
        config.rate_limit_max,
        config.rate_limit_window_ms,
        redis_url=config.redis_url,
    )
    middleware = build_middleware(config, limiter, str(STATIC_DIR))

    app = FastAPI(
        title="Natours API",
        description="Tour booking API and server-rendered site.",
        version=__version__,
        docs_url="/docs" if config.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if config.is_development else None,
        middleware=[entry for _, entry in middleware],
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.rate_limiter = limiter
    app.state.middleware_names = [name for name, _ in middleware]

    register_exception_handlers(app)
    include_route_groups(app)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `natours.main:app` to be importable
app = create_app()
