"""
Repasties — FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the immutable Settings, the engine and
       ConnectionManager, picks the highlight strategy, wires the
       SnippetStore, and registers middleware, exception handlers and routes.
Who:   uvicorn (`uvicorn repasties.main:app`) and the test suite.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Bootstrap the database and the snippets table (fatal on failure)

    Shutdown:
    1. Dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from repasties import __version__
from repasties.config import Settings, load_settings
from repasties.database import ConnectionManager, create_engine
from repasties.exceptions import (
    PersistenceError,
    RepastiesError,
    StoreConnectionError,
    ValidationError,
)
from repasties.middleware.logging import RequestLoggingMiddleware
from repasties.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from repasties.routes import health, snippets
from repasties.services.highlight_service import HighlightRenderer, build_renderer
from repasties.services.snippet_store import SnippetStore, bootstrap_schema

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, then schema bootstrap. A BootstrapError propagates
    and aborts start-up after the attempted host/port has been logged.

    Shutdown: dispose the engine.
    """
    settings: Settings = app.state.settings

    setup_logging(settings)
    logger.info("Repasties %s starting up...", __version__)

    await bootstrap_schema(settings, app.state.connections.engine)

    logger.info(
        "Server ready at http://%s:%d (highlighter: %s)",
        settings.backend_host,
        settings.backend_port,
        app.state.renderer.strategy_name,
    )

    yield

    logger.info("Repasties shutting down...")
    await app.state.connections.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler map:
        ValidationError       → 400, submitted draft echoed in details
        StoreConnectionError  → 503
        PersistenceError      → 303 redirect to the index
        RepastiesError (base) → 500
        Exception (fallback)  → 500

    Responses never carry stack traces or store internals.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.info("Rejected submission: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(StoreConnectionError)
    async def handle_store_unavailable(request: Request, exc: StoreConnectionError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=503,
            content={
                "error": "service_unavailable",
                "message": "Database not available. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        logger.error("Snippet not saved: %s | Context: %s", exc.message, exc.context)
        return RedirectResponse(snippets.INDEX_PATH, status_code=303)

    @app.exception_handler(RepastiesError)
    async def handle_repasties_error(request: Request, exc: RepastiesError):
        rid = request_id_var.get("")
        logger.error("Application error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    renderer: Optional[HighlightRenderer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: configuration value; read from the environment when omitted
        renderer: highlight renderer; selected from PATH when omitted

    The settings value, the ConnectionManager, the renderer and the store
    are attached to app.state and shared read-only by every request.
    """
    settings = settings or load_settings()
    renderer = renderer or build_renderer(settings)
    connections = ConnectionManager(settings, create_engine(settings))

    app = FastAPI(
        title="Repasties API",
        description="Paste, highlight and browse short code snippets.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.connections = connections
    app.state.renderer = renderer
    app.state.store = SnippetStore(
        connections,
        renderer,
        default_limit=settings.default_list_limit,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(snippets.router)
    app.include_router(health.router)

    return app


app = create_app()
