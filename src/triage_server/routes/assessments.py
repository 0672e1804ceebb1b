"""Self-assessment endpoints — drive one patient through the question catalog.

Typical flow::

    POST /assessments                  → {session, step}    first question
    POST /assessments/{id}/answer      → step               store an answer
    POST /assessments/{id}/advance     → step               next question or ESI
    POST /assessments/{id}/admit       → {success, patient} join the queue

Sessions live in the in-process :class:`SessionRegistry`; unknown ids are
404 and operations that do not fit the session's state are 409.  Sessions
idle longer than ``SESSION_TTL_MINUTES`` expire and are 404 as well.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from triage_engine.constants import DEFAULT_CHIEF_COMPLAINT
from triage_engine.engine import AssessmentEngine
from triage_engine.errors import InvalidStateError
from triage_engine.models.patient import PatientDraft
from triage_engine.models.session import SessionInfo, StepResult
from triage_store.repository import QueueRepository

from triage_server.dependencies import get_engine, get_repository, get_sessions
from triage_server.sessions import SessionRegistry

router = APIRouter(prefix="/assessments", tags=["assessments"])

# Free-text answer that doubles as the queue's chief complaint, when asked
_CHIEF_COMPLAINT_QID = "chief_complaint"


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class AnswerRequest(BaseModel):
    """Body for POST /assessments/{id}/answer and /submit."""
    value: Any = None
    qid: str | None = None


class AdmitRequest(BaseModel):
    """Body for POST /assessments/{id}/admit."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    chief_complaint: str | None = None
    wait_time: int = Field(default=0, ge=0)


class AssessmentState(BaseModel):
    """Session summary plus the step the patient is on."""
    session: SessionInfo
    step: StepResult


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("", status_code=201)
def create_assessment(
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AssessmentState:
    """Start a new assessment positioned at the first question."""
    session = sessions.add(engine.start())
    return AssessmentState(
        session=engine.session_info(session),
        step=engine.current_step(session),
    )


@router.get("/{session_id}")
def get_assessment(
    session_id: str,
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AssessmentState:
    """Return session info and the current step without changing anything."""
    session = sessions.get(session_id)
    return AssessmentState(
        session=engine.session_info(session),
        step=engine.current_step(session),
    )


@router.post("/{session_id}/answer")
def answer_question(
    session_id: str,
    body: AnswerRequest,
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> StepResult:
    """Validate and store an answer for the current question."""
    with sessions.locked(session_id) as session:
        return engine.answer(session, body.value, qid=body.qid)


@router.post("/{session_id}/submit")
def submit_answer(
    session_id: str,
    body: AnswerRequest,
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> StepResult:
    """Answer the current question and advance in one call."""
    with sessions.locked(session_id) as session:
        return engine.submit(session, body.value, qid=body.qid)


@router.post("/{session_id}/advance")
def advance_assessment(
    session_id: str,
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> StepResult:
    """Move to the next question; after the last one the ESI is assigned."""
    with sessions.locked(session_id) as session:
        return engine.advance(session)


@router.post("/{session_id}/retreat")
def retreat_assessment(
    session_id: str,
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> StepResult:
    """Step back one question, keeping the answers given so far."""
    with sessions.locked(session_id) as session:
        return engine.retreat(session)


@router.post("/{session_id}/reset")
def reset_assessment(
    session_id: str,
    engine: AssessmentEngine = Depends(get_engine),
    sessions: SessionRegistry = Depends(get_sessions),
) -> StepResult:
    """Clear every answer and return to the first question."""
    with sessions.locked(session_id) as session:
        return engine.reset(session)


@router.post("/{session_id}/admit")
def admit_assessment(
    session_id: str,
    body: AdmitRequest | None = None,
    repository: QueueRepository = Depends(get_repository),
    sessions: SessionRegistry = Depends(get_sessions),
) -> dict:
    """Append the assessed patient to the queue with the computed ESI.

    Only complete sessions can be admitted.  The session is removed from
    the registry once the patient is in the queue, so it cannot be
    admitted twice.  Only this session is locked during the queue write.
    """
    body = body or AdmitRequest()
    with sessions.locked(session_id) as session:
        if not session.is_complete or session.esi is None:
            raise InvalidStateError(
                f"Cannot admit: assessment {session_id} is not complete"
            )
        answers = session.answers.to_raw()
        complaint = body.chief_complaint or answers.get(_CHIEF_COMPLAINT_QID)
        draft = PatientDraft(
            esi=session.esi,
            chief_complaint=complaint or DEFAULT_CHIEF_COMPLAINT,
            wait_time=body.wait_time,
            answers=answers,
        )
        patient = repository.append(draft)
        sessions.remove(session_id)
    return {"success": True, "patient": patient.model_dump(mode="json", by_alias=True)}
