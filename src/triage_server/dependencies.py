"""FastAPI dependency injection — provides the repository, engine, store and sessions.

Everything here is built once by the lifespan handler and stashed on
``app.state``; the dependencies only hand the singletons to route handlers.
"""

from fastapi import Request

from triage_engine.catalog import CatalogStore
from triage_engine.engine import AssessmentEngine
from triage_store.repository import QueueRepository

from triage_server.sessions import SessionRegistry


def get_repository(request: Request) -> QueueRepository:
    """Return the QueueRepository singleton from ``app.state``."""
    return request.app.state.repository


def get_engine(request: Request) -> AssessmentEngine:
    """Return the AssessmentEngine singleton from ``app.state``."""
    return request.app.state.engine


def get_store(request: Request) -> CatalogStore:
    """Return the CatalogStore singleton from ``app.state``."""
    return request.app.state.store


def get_sessions(request: Request) -> SessionRegistry:
    """Return the in-process assessment session registry."""
    return request.app.state.sessions
