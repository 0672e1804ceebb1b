"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the catalogs and wires the repository once
  - CORS middleware
  - Global exception handlers (SDK errors → 400/404/409/500 with ``{error}``)
  - All API routes mounted under ``/api``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``triage-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from triage_engine.catalog import CatalogStore
from triage_engine.engine import AssessmentEngine
from triage_engine.errors import StorageError, TriageError
from triage_store.repository import QueueRepository
from triage_store.storage import JsonFileStorage

from triage_server.config import ServerSettings, load_settings
from triage_server.errors import (
    generic_error_handler,
    request_validation_handler,
    triage_error_handler,
)
from triage_server.routes import register_routes
from triage_server.sessions import SessionRegistry

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup.

    Startup:
      1. Load YAML catalogs and ESI levels into a ``CatalogStore``
      2. Build the ``AssessmentEngine`` for the configured catalog
      3. Open the JSON queue document behind a ``QueueRepository``
      4. Stash everything on ``app.state`` for dependency injection
    """
    settings: ServerSettings = app.state.settings

    # --- Load catalogs ---
    store = CatalogStore(ruleset_dir=settings.ruleset_dir)
    store.load()

    # --- Engine & queue ---
    engine = AssessmentEngine(store, settings.catalog)
    storage = JsonFileStorage(settings.data_file)
    repository = QueueRepository(storage)
    logger.info(
        "Serving catalog '%s' (%s policy), queue at %s",
        engine.catalog.name, engine.classifier.policy, storage.location,
    )

    app.state.store = store
    app.state.engine = engine
    app.state.repository = repository
    app.state.sessions = SessionRegistry(settings.session_ttl_minutes)

    yield

    logger.info("Shutting down with %d open assessments", len(app.state.sessions))


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Triage Queue API Server",
        description="REST API for ED self-triage and the shared patient queue",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(TriageError, triage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api prefix) ---
    @app.get("/health")
    def health() -> dict:
        """Readiness probe — verifies the queue document is readable."""
        storage = app.state.repository.storage
        try:
            storage.read()
            return {"status": "ok"}
        except StorageError as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn triage_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``triage-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "triage_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
