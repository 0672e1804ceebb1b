"""Public model re-exports for triage_engine.

Consumers should import from ``triage_engine.models`` rather than
reaching into sub-modules directly.
"""

# --- Answers ---
from triage_engine.models.answer import (
    Answer,
    AnswerSet,
    ChoiceAnswer,
    DateAnswer,
    NumberAnswer,
    ScaleAnswer,
    TextAnswer,
    YesNoAnswer,
    parse_answer,
)

# --- Patients / queue ---
from triage_engine.models.patient import (
    Patient,
    PatientDraft,
    PatientStatus,
    QueueState,
    QueueStatus,
    format_patient_id,
    patient_id_sequence,
)

# --- Questions ---
from triage_engine.models.question import (
    BaseQuestion,
    DateQuestion,
    MultipleChoiceQuestion,
    NumberQuestion,
    Question,
    ScaleQuestion,
    StringQuestion,
    YesNoQuestion,
    question_mapper,
)

# --- Schema / constants ---
from triage_engine.models.schema import CatalogDocument, EsiLevel

# --- Session / steps ---
from triage_engine.models.session import (
    AssessmentSession,
    AssessmentStatus,
    CompletionStep,
    QuestionPayload,
    QuestionStep,
    SessionInfo,
    StepResult,
)

__all__ = [
    # Answers
    "Answer",
    "AnswerSet",
    "ChoiceAnswer",
    "DateAnswer",
    "NumberAnswer",
    "ScaleAnswer",
    "TextAnswer",
    "YesNoAnswer",
    "parse_answer",
    # Patients / queue
    "Patient",
    "PatientDraft",
    "PatientStatus",
    "QueueState",
    "QueueStatus",
    "format_patient_id",
    "patient_id_sequence",
    # Questions
    "BaseQuestion",
    "DateQuestion",
    "MultipleChoiceQuestion",
    "NumberQuestion",
    "Question",
    "ScaleQuestion",
    "StringQuestion",
    "YesNoQuestion",
    "question_mapper",
    # Schema
    "CatalogDocument",
    "EsiLevel",
    # Session / steps
    "AssessmentSession",
    "AssessmentStatus",
    "CompletionStep",
    "QuestionPayload",
    "QuestionStep",
    "SessionInfo",
    "StepResult",
]
