"""AssessmentEngine — walks one patient through a question catalog.

The engine itself is stateless: every call receives the
:class:`AssessmentSession` it operates on, mutates it in place, and returns
the resulting step.  Nothing is kept in module-level variables, so any
number of sessions can be driven by one engine.

State machine (N = number of questions)::

    AtQuestion(i) --answer(value)-->  AtQuestion(i)      value stored
    AtQuestion(i) --advance()------>  AtQuestion(i+1)    if i < N-1
    AtQuestion(N-1) --advance()---->  Complete(esi)      classifier runs
    AtQuestion(i) --retreat()------>  AtQuestion(i-1)    no-op at i = 0
    any --reset()------------------>  AtQuestion(0)      answers cleared

``answer`` and ``advance`` refuse to move past an unanswered required
question.  A complete session only accepts ``reset``.
"""

from __future__ import annotations

import logging
from typing import Any

from triage_engine.catalog import CatalogStore, QuestionCatalog
from triage_engine.classifier import get_classifier
from triage_engine.constants import DEFAULT_CATALOG
from triage_engine.errors import InvalidStateError, ValidationError
from triage_engine.interfaces import TriageClassifier
from triage_engine.models.answer import parse_answer
from triage_engine.models.question import (
    MultipleChoiceQuestion,
    NumberQuestion,
    Question,
    ScaleQuestion,
    StringQuestion,
)
from triage_engine.models.session import (
    AssessmentSession,
    AssessmentStatus,
    CompletionStep,
    QuestionPayload,
    QuestionStep,
    SessionInfo,
    StepResult,
)

logger = logging.getLogger(__name__)


class AssessmentEngine:
    """Drives assessment sessions over one catalog.

    Args:
        store: a loaded :class:`CatalogStore` instance
        catalog_name: which catalog to walk (defaults to ``TRIAGE_CATALOG``)
        classifier: override the classifier the catalog's policy names

    Raises:
        KeyError: if the catalog is not in the store.
        ValueError: if the classifier does not fit the catalog.
    """

    def __init__(
        self,
        store: CatalogStore,
        catalog_name: str | None = None,
        *,
        classifier: TriageClassifier | None = None,
    ) -> None:
        self._store = store
        self._catalog: QuestionCatalog = store.get_catalog(catalog_name or DEFAULT_CATALOG)
        self._classifier = classifier or get_classifier(self._catalog.policy)
        if self._classifier.policy != self._catalog.policy:
            raise ValueError(
                f"Catalog '{self._catalog.name}' was written for the "
                f"'{self._catalog.policy}' policy, not '{self._classifier.policy}'"
            )
        self._classifier.check_catalog(self._catalog)

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    @property
    def classifier(self) -> TriageClassifier:
        return self._classifier

    # ==================================================================
    # Session lifecycle
    # ==================================================================

    def start(self) -> AssessmentSession:
        """Create a new session positioned at the first question."""
        session = AssessmentSession(catalog=self._catalog.name)
        logger.info("Assessment %s started (catalog=%s)", session.session_id, self._catalog.name)
        return session

    def session_info(self, session: AssessmentSession) -> SessionInfo:
        """Public summary of a session."""
        self._check_catalog(session)
        return SessionInfo(
            session_id=session.session_id,
            catalog=session.catalog,
            status=session.status.value,
            position=session.index + 1,
            total=len(self._catalog),
            esi=session.esi,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

    def questions(self) -> list[QuestionPayload]:
        """Every question in the catalog, in order, as API payloads."""
        return [self._to_payload(q, None) for q in self._catalog]

    # ==================================================================
    # Step API
    # ==================================================================

    def current_step(self, session: AssessmentSession) -> StepResult:
        """Return the current step without modifying the session."""
        self._check_catalog(session)
        if session.is_complete:
            return self._completion_step(session)
        return self._question_step(session)

    def answer(
        self,
        session: AssessmentSession,
        value: Any,
        *,
        qid: str | None = None,
    ) -> QuestionStep:
        """Validate ``value`` against the current question and store it.

        ``qid`` is optional; when given it must name the current question.
        A blank answer to an optional question clears any stored answer.

        Raises:
            ValidationError: if the value does not fit the question (the
                session is left unchanged).
            InvalidStateError: if the session is complete or ``qid`` is not
                the current question.
        """
        self._require_in_progress(session, "answer")
        question = self._catalog[session.index]
        if qid is not None and qid != question.qid:
            if qid not in self._catalog:
                raise ValidationError(f"Unknown question id: '{qid}'", field=qid)
            raise InvalidStateError(
                f"Cannot answer '{qid}': the current question is '{question.qid}'"
            )

        parsed = parse_answer(question, value)
        if parsed is None:
            session.answers.discard(question.qid)
        else:
            session.answers.set(question.qid, parsed)
        session.touch()
        return self._question_step(session)

    def advance(self, session: AssessmentSession) -> StepResult:
        """Move to the next question, or classify after the last one.

        Raises:
            ValidationError: if the current question is required and unanswered.
            InvalidStateError: if the session is already complete.
        """
        self._require_in_progress(session, "advance")
        question = self._catalog[session.index]
        if question.required and question.qid not in session.answers:
            raise ValidationError(
                f"Question '{question.qid}' must be answered before advancing",
                field=question.qid,
            )

        if session.index < len(self._catalog) - 1:
            session.index += 1
            session.touch()
            return self._question_step(session)

        session.esi = self._classifier.classify(session.answers)
        session.status = AssessmentStatus.COMPLETE
        session.touch()
        logger.info(
            "Assessment %s complete: ESI %d (%s)",
            session.session_id, session.esi, self._store.esi_label(session.esi),
        )
        return self._completion_step(session)

    def submit(
        self,
        session: AssessmentSession,
        value: Any,
        *,
        qid: str | None = None,
    ) -> StepResult:
        """Answer the current question and advance in one call."""
        self.answer(session, value, qid=qid)
        return self.advance(session)

    def retreat(self, session: AssessmentSession) -> QuestionStep:
        """Step back one question, keeping every answer given so far.

        At the first question this is a no-op.

        Raises:
            InvalidStateError: if the session is complete (use ``reset``).
        """
        self._require_in_progress(session, "retreat")
        if session.index > 0:
            session.index -= 1
            session.touch()
        return self._question_step(session)

    def reset(self, session: AssessmentSession) -> QuestionStep:
        """Clear all answers and the ESI and return to the first question."""
        self._check_catalog(session)
        session.answers.clear()
        session.index = 0
        session.esi = None
        session.status = AssessmentStatus.IN_PROGRESS
        session.touch()
        logger.info("Assessment %s reset", session.session_id)
        return self._question_step(session)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    def _check_catalog(self, session: AssessmentSession) -> None:
        if session.catalog != self._catalog.name:
            raise InvalidStateError(
                f"Session {session.session_id} belongs to catalog "
                f"'{session.catalog}', not '{self._catalog.name}'"
            )

    def _require_in_progress(self, session: AssessmentSession, action: str) -> None:
        self._check_catalog(session)
        if session.is_complete:
            raise InvalidStateError(
                f"Cannot {action}: assessment {session.session_id} is complete; "
                "reset it to start over"
            )

    def _question_step(self, session: AssessmentSession) -> QuestionStep:
        question = self._catalog[session.index]
        previous = session.answers.get(question.qid)
        return QuestionStep(
            session_id=session.session_id,
            position=session.index + 1,
            total=len(self._catalog),
            answered=previous is not None,
            question=self._to_payload(question, previous.raw() if previous else None),
        )

    def _completion_step(self, session: AssessmentSession) -> CompletionStep:
        level = self._store.esi_levels[session.esi]
        return CompletionStep(
            session_id=session.session_id,
            esi=session.esi,
            label=level.label,
            patient_message=level.patient_message,
            answers=session.answers.to_raw(),
        )

    @staticmethod
    def _to_payload(question: Question, previous_value: Any) -> QuestionPayload:
        """Flatten a typed question into the API payload."""
        options = None
        constraints = None
        if isinstance(question, MultipleChoiceQuestion):
            options = list(question.options)
        elif isinstance(question, ScaleQuestion):
            options = question.options
            constraints = {
                "min": question.min_value,
                "max": question.max_value,
                "min_label": question.min_label,
                "max_label": question.max_label,
            }
        elif isinstance(question, NumberQuestion):
            constraints = {"min": question.min_value, "max": question.max_value}
        elif isinstance(question, StringQuestion):
            constraints = {"max_length": question.max_length}

        return QuestionPayload(
            qid=question.qid,
            question=question.question,
            question_type=question.question_type,
            required=question.required,
            section=question.section,
            section_title=question.section_title,
            options=options,
            constraints=constraints,
            previous_value=previous_value,
        )
