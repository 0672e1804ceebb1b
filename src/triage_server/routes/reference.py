"""Reference data endpoints — the active question catalog and ESI levels.

These are read-only endpoints that expose what was loaded from the ``v1/``
YAML files.
"""

from fastapi import APIRouter, Depends

from triage_engine.catalog import CatalogStore
from triage_engine.engine import AssessmentEngine

from triage_server.dependencies import get_engine, get_store

router = APIRouter(prefix="/reference", tags=["reference"])


@router.get("/questions")
def list_questions(
    engine: AssessmentEngine = Depends(get_engine),
) -> dict:
    """Return the active catalog's questions in presentation order."""
    catalog = engine.catalog
    return {
        "catalog": catalog.name,
        "title": catalog.title,
        "policy": catalog.policy,
        "questions": [q.model_dump() for q in engine.questions()],
    }


@router.get("/esi-levels")
def list_esi_levels(
    store: CatalogStore = Depends(get_store),
) -> list[dict]:
    """Return ESI levels 1-5 with labels, descriptions and patient messages."""
    return [store.resolve_esi(level) for level in sorted(store.esi_levels)]
