"""Patient queue endpoints — load, admit, bulk replace, recover, status.

The browser dashboard polls ``GET /patients`` and writes back with
``PUT /patients``; the self-assessment kiosk admits through
``POST /patients`` (or ``POST /assessments/{id}/admit``).  All writes go
through the single :class:`QueueRepository`, which serialises them.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from triage_engine.models.patient import PatientDraft
from triage_store.repository import QueueRepository

from triage_server.dependencies import get_repository

router = APIRouter(prefix="/patients", tags=["patients"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class ReplaceQueueRequest(BaseModel):
    """Body for PUT /patients.

    Fields are loosely typed; the repository validates them and names
    the offending entry (``patients[2].esi``).
    """
    model_config = ConfigDict(populate_by_name=True)

    patients: Any = None
    last_id: Any = Field(default=None, alias="lastId")


class UpdateStatusRequest(BaseModel):
    """Body for PATCH /patients/{id}/status."""
    status: str


class SetEsiRequest(BaseModel):
    """Body for PATCH /patients/{id}/esi."""
    esi: Any


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("")
def list_patients(
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Return the persisted queue in append order.

    Never fails: unreadable storage yields ``{patients: [], lastId: 0}``.
    """
    return repository.load_all().to_document()


@router.post("")
def admit_patient(
    body: PatientDraft,
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Append a patient with the next id and status ``Waiting``."""
    patient = repository.append(body)
    return {"success": True, "patient": patient.model_dump(mode="json", by_alias=True)}


@router.put("")
def replace_patients(
    body: ReplaceQueueRequest,
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Replace the whole queue after validating every patient."""
    repository.replace_all(body.patients, body.last_id)
    return {"success": True}


@router.post("/recover")
def recover_patients(
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Restore the queue from the backup copy."""
    state = repository.recover_from_backup()
    return {
        "success": True,
        "message": f"Recovered {len(state.patients)} patients from backup",
    }


@router.get("/status")
def queue_status(
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Patient count, id counter and whether a backup exists."""
    return repository.status().model_dump(by_alias=True)


@router.patch("/{patient_id}/status")
def update_patient_status(
    patient_id: str,
    body: UpdateStatusRequest,
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Move one patient to ``Waiting``, ``In Triage`` or ``Being Seen``."""
    patient = repository.update_status(patient_id, body.status)
    return {"success": True, "patient": patient.model_dump(mode="json", by_alias=True)}


@router.patch("/{patient_id}/esi")
def set_patient_esi(
    patient_id: str,
    body: SetEsiRequest,
    repository: QueueRepository = Depends(get_repository),
) -> dict:
    """Re-triage one patient to a new ESI level."""
    patient = repository.set_esi(patient_id, body.esi)
    return {"success": True, "patient": patient.model_dump(mode="json", by_alias=True)}
