"""Abstract interfaces at the two seams of the triage system.

These ABCs define the contract that implementations must fulfil:

    TriageClassifier — answers in, ESI out (pure, total)
    QueueStorage     — the persistence collaborator behind the queue repository

Typical integration flow::

    store = CatalogStore(); store.load()
    catalog = store.get_catalog("vitals")

    classifier: TriageClassifier = get_classifier(catalog.policy)
    classifier.check_catalog(catalog)     # refuse mismatched field names
    esi = classifier.classify(session.answers)

    storage: QueueStorage = JsonFileStorage("data/patients.json")
    repo = QueueRepository(storage)
    patient = repo.append(PatientDraft(esi=esi))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from triage_engine.models.question import MultipleChoiceQuestion, YesNoQuestion

if TYPE_CHECKING:
    from triage_engine.catalog import QuestionCatalog


class TriageClassifier(ABC):
    """Interface for an ESI scoring policy.

    Implementations must be pure, deterministic and total: any answer
    mapping, including an empty one, yields an ESI in [1, 5] and never
    raises.  Missing or malformed numeric answers count as 0.

    Subclasses declare the answer fields they read in ``fields``: the
    mapping value is the tuple of literal option values the rules compare
    against (empty for numeric fields).  :meth:`check_catalog` uses it to
    reject catalogs whose ids or options would leave rules unreachable.
    """

    policy: ClassVar[str]
    fields: ClassVar[dict[str, tuple[str, ...]]]

    @abstractmethod
    def classify(self, answers: Mapping[str, Any] | Any) -> int:
        """Return the ESI level (1 = most urgent) for an answer set.

        Parameters
        ----------
        answers:
            An ``AnswerSet`` or any raw ``{qid: value}`` mapping.  Values
            may be strings, numbers, booleans or ``None``.

        Returns
        -------
        int
            ESI level in [1, 5].
        """
        ...

    def check_catalog(self, catalog: "QuestionCatalog") -> None:
        """Verify every field and option value this policy reads exists in ``catalog``.

        Raises:
            ValueError: listing every missing field and unknown option value.
        """
        problems: list[str] = []
        for field, values in self.fields.items():
            if field not in catalog:
                problems.append(f"missing question '{field}'")
                continue
            question = catalog.get(field)
            if isinstance(question, MultipleChoiceQuestion):
                allowed = set(question.options)
            elif isinstance(question, YesNoQuestion):
                allowed = {"yes", "no"}
            else:
                allowed = None
            if allowed is None:
                if values:
                    problems.append(
                        f"question '{field}' is {question.question_type}, "
                        f"expected a choice among {list(values)}"
                    )
                continue
            unknown = [v for v in values if v not in allowed]
            if unknown:
                problems.append(f"question '{field}' has no option(s) {unknown}")

        if problems:
            raise ValueError(
                f"Catalog '{catalog.name}' does not fit the '{self.policy}' "
                f"classifier: " + "; ".join(problems)
            )


class QueueStorage(ABC):
    """Interface for the document store behind ``QueueRepository``.

    The store holds one JSON-compatible document (the queue state) plus a
    backup copy of the previous document.  Implementations need not be
    thread-safe: the repository serialises every mutation.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Stable identifier of the primary document (e.g. its absolute path).

        Repositories sharing a location share one writer lock.
        """
        ...

    @abstractmethod
    def read(self) -> dict | None:
        """Return the primary document, or None if it does not exist yet.

        Raises:
            StorageError: if the document exists but cannot be read or parsed.
        """
        ...

    @abstractmethod
    def write(self, document: dict) -> None:
        """Atomically replace the primary document.

        The previous primary (if it parses) is copied to the backup first.
        A backup failure is logged and does not block the write.

        Raises:
            StorageError: if the primary could not be written.
        """
        ...

    @abstractmethod
    def read_backup(self) -> dict | None:
        """Return the backup document, or None if no backup exists.

        Raises:
            StorageError: if the backup exists but cannot be read or parsed.
        """
        ...

    @abstractmethod
    def restore(self, document: dict) -> None:
        """Atomically replace the primary with ``document`` without touching the backup.

        Raises:
            StorageError: if the primary could not be written.
        """
        ...

    @abstractmethod
    def backup_exists(self) -> bool:
        """True if a backup document is present."""
        ...
