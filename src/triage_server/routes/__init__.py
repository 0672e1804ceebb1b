"""Route registration — mounts all routers under ``/api``."""

from fastapi import FastAPI

from triage_server.routes.assessments import router as assessments_router
from triage_server.routes.patients import router as patients_router
from triage_server.routes.queue import router as queue_router
from triage_server.routes.reference import router as reference_router

API_PREFIX = "/api"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the API prefix."""
    app.include_router(patients_router, prefix=API_PREFIX)
    app.include_router(queue_router, prefix=API_PREFIX)
    app.include_router(assessments_router, prefix=API_PREFIX)
    app.include_router(reference_router, prefix=API_PREFIX)
