"""Queue view endpoint — urgency-ordered patients plus summary statistics."""

from fastapi import APIRouter, Depends

from triage_engine.catalog import CatalogStore
from triage_engine.view import QueueView
from triage_store.repository import QueueRepository

from triage_server.dependencies import get_repository, get_store

router = APIRouter(tags=["queue"])


@router.get("/queue")
def get_queue(
    repository: QueueRepository = Depends(get_repository),
    store: CatalogStore = Depends(get_store),
) -> dict:
    """Return the queue sorted by ESI (stable) with positions, labels and stats."""
    view = QueueView(repository.load_all(), esi_label=store.esi_label)
    stats = view.stats()
    return {
        "patients": [
            {
                "position": entry.position,
                "label": entry.label,
                **entry.patient.model_dump(mode="json", by_alias=True),
            }
            for entry in view.ranked()
        ],
        "stats": {
            "total": stats.total,
            "critical": stats.critical,
            "avgWait": stats.avg_wait,
        },
    }
