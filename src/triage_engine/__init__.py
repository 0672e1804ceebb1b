"""triage_engine — rule-based emergency department self-triage SDK.

Public API:
    CatalogStore        — loads YAML catalogs and ESI levels into typed models
    QuestionCatalog     — one ordered, immutable questionnaire
    AssessmentEngine    — drives an AssessmentSession through a catalog
    AssessmentSession   — the explicit state of one self-triage run
    QueueView           — urgency order and statistics over a queue snapshot

Classifiers:
    TriageClassifier      — ABC for ESI scoring policies
    VitalsClassifier      — "vitals" policy: first matching tier wins
    ProgressionClassifier — "progression" policy: ordered tighten/loosen rules
    get_classifier        — look up a classifier by policy name
    classify              — one-shot classification helper

Storage seam:
    QueueStorage      — ABC implemented by ``triage_store``

Errors:
    TriageError, ValidationError, InvalidStateError, StorageError,
    RecoveryError, PatientNotFoundError, SessionNotFoundError
"""

from triage_engine.catalog import CatalogStore, QuestionCatalog
from triage_engine.classifier import (
    ProgressionClassifier,
    VitalsClassifier,
    classify,
    get_classifier,
)
from triage_engine.engine import AssessmentEngine
from triage_engine.errors import (
    InvalidStateError,
    PatientNotFoundError,
    RecoveryError,
    SessionNotFoundError,
    StorageError,
    TriageError,
    ValidationError,
)
from triage_engine.interfaces import QueueStorage, TriageClassifier
from triage_engine.models.patient import (
    Patient,
    PatientDraft,
    PatientStatus,
    QueueState,
    QueueStatus,
)
from triage_engine.models.session import (
    AssessmentSession,
    CompletionStep,
    QuestionStep,
    SessionInfo,
    StepResult,
)
from triage_engine.view import QueueEntry, QueueStats, QueueView

__all__ = [
    # Catalog & engine
    "CatalogStore",
    "QuestionCatalog",
    "AssessmentEngine",
    "AssessmentSession",
    "CompletionStep",
    "QuestionStep",
    "SessionInfo",
    "StepResult",
    # Classifiers
    "TriageClassifier",
    "VitalsClassifier",
    "ProgressionClassifier",
    "get_classifier",
    "classify",
    # Queue
    "Patient",
    "PatientDraft",
    "PatientStatus",
    "QueueState",
    "QueueStatus",
    "QueueStorage",
    "QueueEntry",
    "QueueStats",
    "QueueView",
    # Errors
    "TriageError",
    "ValidationError",
    "InvalidStateError",
    "StorageError",
    "RecoveryError",
    "PatientNotFoundError",
    "SessionNotFoundError",
]
