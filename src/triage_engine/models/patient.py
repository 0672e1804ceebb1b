"""Patient and queue models — the unit of persistence.

JSON documents use camelCase keys (``lastId``, ``arrivalTime``,
``chiefComplaint``, ``waitTime``) to match the persisted layout::

    {"patients": [Patient, ...], "lastId": 5}

Snake_case field names are accepted on input as well, so older documents that
wrote ``chief_complaint`` still load.
"""

from __future__ import annotations

import enum
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from triage_engine.constants import (
    DEFAULT_CHIEF_COMPLAINT,
    ESI_MAX,
    ESI_MIN,
    PATIENT_ID_PATTERN,
    PATIENT_ID_PREFIX,
    PATIENT_ID_WIDTH,
)

_ID_RE = re.compile(PATIENT_ID_PATTERN)


class PatientStatus(str, enum.Enum):
    """Where a queued patient currently is.

    Transitions (driven by staff through the repository):
        Waiting -> In Triage -> Being Seen
    """

    WAITING = "Waiting"
    IN_TRIAGE = "In Triage"
    BEING_SEEN = "Being Seen"


def format_patient_id(sequence: int) -> str:
    """Render a sequence number as a patient id: 5 → ``"P005"``."""
    return f"{PATIENT_ID_PREFIX}{sequence:0{PATIENT_ID_WIDTH}d}"


def patient_id_sequence(patient_id: str) -> int:
    """Return the numeric suffix of a well-formed patient id."""
    if not _ID_RE.match(patient_id):
        raise ValueError(f"Malformed patient id: '{patient_id}'")
    return int(patient_id[len(PATIENT_ID_PREFIX):])


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PatientDraft(_CamelModel):
    """A patient about to be admitted — everything except repository-owned fields."""

    esi: int = Field(ge=ESI_MIN, le=ESI_MAX)
    chief_complaint: str = DEFAULT_CHIEF_COMPLAINT
    # Caller-supplied wait estimate in minutes; only averaged for display
    wait_time: int = Field(default=0, ge=0)
    answers: dict[str, Any] = Field(default_factory=dict)


class Patient(_CamelModel):
    """An admitted patient.  ``id`` is immutable once assigned."""

    id: str
    esi: int = Field(ge=ESI_MIN, le=ESI_MAX)
    status: PatientStatus = PatientStatus.WAITING
    arrival_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    chief_complaint: str = DEFAULT_CHIEF_COMPLAINT
    wait_time: int = Field(default=0, ge=0)
    answers: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def _chk_id(cls, value: str) -> str:
        if not _ID_RE.match(value):
            raise ValueError(
                f"Patient id must look like {PATIENT_ID_PREFIX}001, got '{value}'"
            )
        return value

    @property
    def sequence(self) -> int:
        return patient_id_sequence(self.id)


class QueueState(_CamelModel):
    """The full persisted queue: patients in append order plus the id counter."""

    patients: list[Patient] = Field(default_factory=list)
    last_id: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _chk_invariants(self):
        seen: set[str] = set()
        for patient in self.patients:
            if patient.id in seen:
                raise ValueError(f"Duplicate patient id: '{patient.id}'")
            seen.add(patient.id)
        highest = max((p.sequence for p in self.patients), default=0)
        if self.last_id < highest:
            raise ValueError(
                f"lastId {self.last_id} is below the highest assigned id "
                f"{format_patient_id(highest)}"
            )
        return self

    def find(self, patient_id: str) -> Patient | None:
        for patient in self.patients:
            if patient.id == patient_id:
                return patient
        return None

    def to_document(self) -> dict[str, Any]:
        """Serialise to the persisted JSON layout."""
        return self.model_dump(mode="json", by_alias=True)


class QueueStatus(_CamelModel):
    """Health summary of the persisted queue."""

    patient_count: int
    last_id: int
    backup_exists: bool
    data_file: str
