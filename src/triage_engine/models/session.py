"""Assessment session and step models — the contract between the engine and API callers.

``AssessmentSession`` is the whole state of one self-triage run.  It is a
plain value: the engine mutates it through explicit operations and never
keeps one in a module-level variable.

Step types:
  - QuestionStep: present the current question to the patient
  - CompletionStep: the questionnaire is finished and an ESI was assigned

The ``StepResult`` union covers both cases so callers can dispatch on ``type``.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from triage_engine.models.answer import AnswerSet


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentStatus(str, enum.Enum):
    """Lifecycle states for an assessment session.

    Transitions:
        in_progress -> complete     (last question advanced, ESI assigned)
        complete    -> in_progress  (reset)
    """

    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class AssessmentSession(BaseModel):
    """One patient's pass through a question catalog.

    ``index`` is the position of the current question while in progress.
    ``esi`` is set only when the status is ``complete``.
    """

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    catalog: str
    index: int = 0
    answers: AnswerSet = Field(default_factory=AnswerSet)
    status: AssessmentStatus = AssessmentStatus.IN_PROGRESS
    esi: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_complete(self) -> bool:
        return self.status == AssessmentStatus.COMPLETE

    def touch(self) -> None:
        self.updated_at = _utcnow()


class QuestionPayload(BaseModel):
    """Flattened question for API consumers.

    Presents only what the UI needs to render the question.
    """

    qid: str
    question: str
    question_type: str
    required: bool = True
    section: str | None = None
    section_title: str | None = None
    # Allowed values for multiple / scale questions
    options: list[Any] | None = None
    # {min, max} for scale / number, {max_length} for string
    constraints: dict | None = None
    # Answer already given for this question (e.g. after stepping back)
    previous_value: Any = None


class QuestionStep(BaseModel):
    """Engine step: present the current question and wait for an answer."""

    type: Literal["question"] = "question"
    session_id: str
    position: int
    total: int
    answered: bool
    question: QuestionPayload


class CompletionStep(BaseModel):
    """Engine step: the questionnaire is done and the ESI is bound."""

    type: Literal["complete"] = "complete"
    session_id: str
    esi: int
    label: str
    patient_message: str
    answers: dict[str, Any]


# Callers can match on step.type to dispatch rendering logic.
StepResult = QuestionStep | CompletionStep


class SessionInfo(BaseModel):
    """Public view of session state for API consumers."""

    session_id: str
    catalog: str
    status: str
    position: int
    total: int
    esi: int | None = None
    created_at: datetime
    updated_at: datetime
