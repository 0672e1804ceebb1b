"""QueueRepository — the only writer of the shared patient queue.

Every mutation is a read-modify-write of the whole queue document.  Two
appends that both read ``lastId = 4`` would both assign ``P005``, so all
mutations run under a writer lock.  The lock is keyed by the storage
location, which means two repositories pointed at the same file still
serialise against each other within this process.

Reads (:meth:`load_all`) take no lock: the storage replaces its document
atomically, so a reader sees either the previous or the next state.
A reader of broken storage gets an empty queue; a writer gets StorageError
until the primary is recovered.

The repository enforces the queue invariants (unique well-formed ids,
``lastId`` >= the highest id, ESI within [1, 5]) before anything is
written; the storage layer never sees an invalid document.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from pydantic import ValidationError as PydanticValidationError

from triage_engine.constants import ESI_MAX, ESI_MIN
from triage_engine.errors import (
    PatientNotFoundError,
    RecoveryError,
    StorageError,
    ValidationError,
)
from triage_engine.interfaces import QueueStorage
from triage_engine.models.patient import (
    Patient,
    PatientDraft,
    PatientStatus,
    QueueState,
    QueueStatus,
    format_patient_id,
    patient_id_sequence,
)

logger = logging.getLogger(__name__)

# One writer lock per storage location, shared by every repository in the process.
_writer_locks: dict[str, threading.RLock] = {}
_writer_locks_guard = threading.Lock()


def _writer_lock(location: str) -> threading.RLock:
    with _writer_locks_guard:
        lock = _writer_locks.get(location)
        if lock is None:
            lock = threading.RLock()
            _writer_locks[location] = lock
        return lock


def _first_error(exc: PydanticValidationError) -> tuple[str, str]:
    """Return (dotted location, message) of the first pydantic error."""
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return loc, err.get("msg", str(exc))


class QueueRepository:
    """Append, bulk-replace and targeted updates on the persisted queue.

    Args:
        storage: the backing document store
        clock: returns the arrival timestamp for new patients (UTC now by default)
    """

    def __init__(
        self,
        storage: QueueStorage,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._lock = _writer_lock(storage.location)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def storage(self) -> QueueStorage:
        return self._storage

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load_all(self) -> QueueState:
        """Return the persisted queue.

        Missing, unreadable or corrupt storage yields an empty queue
        (``{patients: [], lastId: 0}``) instead of an error; the problem is
        logged so an operator can run :meth:`recover_from_backup`.
        """
        try:
            document = self._storage.read()
        except StorageError as exc:
            logger.error("Error loading patients: %s; returning empty queue", exc)
            return QueueState()
        if document is None:
            return QueueState()

        try:
            return QueueState.model_validate(self._normalise(document))
        except PydanticValidationError as exc:
            loc, msg = _first_error(exc)
            logger.error(
                "Invalid queue document at %s (%s: %s); returning empty queue",
                self._storage.location, loc or "document", msg,
            )
            return QueueState()

    def status(self) -> QueueStatus:
        """Patient count, id counter and backup presence for health checks."""
        state = self.load_all()
        return QueueStatus(
            patient_count=len(state.patients),
            last_id=state.last_id,
            backup_exists=self._storage.backup_exists(),
            data_file=self._storage.location,
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def append(self, draft: PatientDraft | dict[str, Any]) -> Patient:
        """Admit a patient: assign the next id, mark them Waiting, persist.

        Raises:
            ValidationError: if ``draft`` is malformed (e.g. ESI out of range).
            StorageError: if the stored queue is unreadable or invalid, or
                the write fails.  ``lastId`` is not advanced.
        """
        draft = self._coerce_draft(draft)

        with self._lock:
            state = self._load_for_write()
            next_id = state.last_id + 1
            patient = Patient(
                id=format_patient_id(next_id),
                esi=draft.esi,
                status=PatientStatus.WAITING,
                arrival_time=self._clock(),
                chief_complaint=draft.chief_complaint,
                wait_time=draft.wait_time,
                answers=dict(draft.answers),
            )
            self._save(QueueState(patients=[*state.patients, patient], last_id=next_id))

        logger.info("Admitted patient %s (ESI %d)", patient.id, patient.esi)
        return patient

    def replace_all(
        self,
        patients: Iterable[Patient | dict[str, Any]],
        last_id: int,
    ) -> QueueState:
        """Validate and persist a complete replacement queue.

        Nothing is written unless every patient passes validation.

        Raises:
            ValidationError: naming the offending field, e.g.
                ``patients[2].esi`` or ``lastId``.
            StorageError: if the write fails.
        """
        state = self._build_state(patients, last_id)
        with self._lock:
            self._save(state)
        logger.info(
            "Replaced queue: %d patients, lastId=%d", len(state.patients), state.last_id,
        )
        return state

    def update_status(self, patient_id: str, status: PatientStatus | str) -> Patient:
        """Change one patient's status.

        Raises:
            ValidationError: if ``status`` is not a known PatientStatus.
            PatientNotFoundError: if no patient has ``patient_id``.
            StorageError: if the stored queue is unreadable or the write fails.
        """
        try:
            new_status = PatientStatus(status)
        except ValueError:
            raise ValidationError(
                f"Invalid status {status!r}; expected one of "
                f"{[s.value for s in PatientStatus]}",
                field="status",
            ) from None
        return self._update_patient(patient_id, status=new_status)

    def set_esi(self, patient_id: str, esi: int) -> Patient:
        """Re-triage one patient.

        Raises:
            ValidationError: if ``esi`` is not an integer in [1, 5].
            PatientNotFoundError: if no patient has ``patient_id``.
            StorageError: if the stored queue is unreadable or the write fails.
        """
        if isinstance(esi, bool) or not isinstance(esi, int) or not ESI_MIN <= esi <= ESI_MAX:
            raise ValidationError(
                f"ESI must be an integer in [{ESI_MIN}, {ESI_MAX}], got {esi!r}",
                field="esi",
            )
        return self._update_patient(patient_id, esi=esi)

    def recover_from_backup(self) -> QueueState:
        """Restore the primary document from the backup.

        Raises:
            RecoveryError: if there is no backup, it is unreadable or it
                fails validation, or the restore write fails.
        """
        with self._lock:
            try:
                document = self._storage.read_backup()
            except StorageError as exc:
                raise RecoveryError(f"Backup recovery failed: {exc}") from exc
            if document is None:
                raise RecoveryError("Backup recovery failed: no backup exists")

            try:
                state = QueueState.model_validate(self._normalise(document))
            except PydanticValidationError as exc:
                loc, msg = _first_error(exc)
                raise RecoveryError(
                    f"Backup data is also corrupted ({loc or 'document'}: {msg})"
                ) from exc

            try:
                self._storage.restore(state.to_document())
            except StorageError as exc:
                raise RecoveryError(f"Backup recovery failed: {exc}") from exc

        logger.info(
            "Recovered %d patients from backup (lastId=%d)",
            len(state.patients), state.last_id,
        )
        return state

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _save(self, state: QueueState) -> None:
        self._storage.write(state.to_document())

    def _load_for_write(self) -> QueueState:
        """Read the queue a mutation builds on.

        Unlike :meth:`load_all` this never falls back to an empty queue: a
        primary that exists but is unreadable or invalid raises, so a write
        cannot restart ids at P001 or push the last good backup out.

        Raises:
            StorageError: if the primary document is unreadable or invalid.
        """
        try:
            document = self._storage.read()
        except StorageError as exc:
            raise StorageError(
                f"Queue document is unreadable ({exc}); "
                "run recover_from_backup before modifying the queue"
            ) from exc
        if document is None:
            return QueueState()

        try:
            return QueueState.model_validate(self._normalise(document))
        except PydanticValidationError as exc:
            loc, msg = _first_error(exc)
            raise StorageError(
                f"Queue document at {self._storage.location} is invalid "
                f"({loc or 'document'}: {msg}); "
                "run recover_from_backup before modifying the queue"
            ) from exc

    def _update_patient(self, patient_id: str, **changes: Any) -> Patient:
        with self._lock:
            state = self._load_for_write()
            patients = list(state.patients)
            for i, patient in enumerate(patients):
                if patient.id == patient_id:
                    updated = patient.model_copy(update=changes)
                    patients[i] = updated
                    break
            else:
                raise PatientNotFoundError(f"Patient not found: {patient_id}")
            self._save(QueueState(patients=patients, last_id=state.last_id))

        logger.info("Updated patient %s: %s", patient_id, changes)
        return updated

    @staticmethod
    def _coerce_draft(draft: PatientDraft | dict[str, Any]) -> PatientDraft:
        if isinstance(draft, PatientDraft):
            return draft
        try:
            return PatientDraft.model_validate(draft)
        except PydanticValidationError as exc:
            loc, msg = _first_error(exc)
            raise ValidationError(f"Invalid patient data ({loc}): {msg}", field=loc) from exc

    @staticmethod
    def _normalise(document: dict[str, Any]) -> dict[str, Any]:
        """Fill in a missing or non-integer ``lastId`` from the highest patient id."""
        last_id = document.get("lastId", document.get("last_id"))
        if isinstance(last_id, int) and not isinstance(last_id, bool):
            return document

        patients = document.get("patients")
        highest = 0
        if isinstance(patients, list):
            for raw in patients:
                pid = raw.get("id") if isinstance(raw, dict) else None
                if isinstance(pid, str):
                    try:
                        highest = max(highest, patient_id_sequence(pid))
                    except ValueError:
                        continue
        logger.warning("Queue document has no valid lastId; using %d", highest)
        return {**document, "lastId": highest}

    @staticmethod
    def _build_state(
        patients: Iterable[Patient | dict[str, Any]],
        last_id: Any,
    ) -> QueueState:
        """Validate a bulk-replace payload into a QueueState."""
        if isinstance(last_id, bool) or not isinstance(last_id, int) or last_id < 0:
            raise ValidationError(f"Invalid lastId: {last_id!r}", field="lastId")
        if isinstance(patients, (str, bytes, dict)) or not isinstance(patients, Iterable):
            raise ValidationError("Invalid patients data: expected a list", field="patients")

        parsed: list[Patient] = []
        for i, raw in enumerate(patients):
            if isinstance(raw, Patient):
                parsed.append(raw)
                continue
            if not isinstance(raw, dict):
                raise ValidationError(
                    f"Invalid patient data at index {i}", field=f"patients[{i}]",
                )
            try:
                parsed.append(Patient.model_validate(raw))
            except PydanticValidationError as exc:
                loc, msg = _first_error(exc)
                label = raw.get("id") if isinstance(raw.get("id"), str) else f"at index {i}"
                raise ValidationError(
                    f"Patient {label} has invalid {loc or 'data'}: {msg}",
                    field=f"patients[{i}].{loc}" if loc else f"patients[{i}]",
                ) from exc

        try:
            return QueueState(patients=parsed, last_id=last_id)
        except PydanticValidationError as exc:
            _, msg = _first_error(exc)
            raise ValidationError(f"Invalid queue: {msg}", field="patients") from exc
