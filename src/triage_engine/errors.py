"""Exception taxonomy for the triage SDK and its storage layer.

All exceptions inherit from :class:`TriageError` so callers can catch every
SDK failure in one place.  Several also inherit from a builtin so code that
already handles ``ValueError`` / ``KeyError`` keeps working:

    ValidationError       (ValueError) — malformed answer or bulk payload
    InvalidStateError     (ValueError) — operation not valid in the current state
    PatientNotFoundError  (KeyError)   — unknown patient id
    SessionNotFoundError  (KeyError)   — unknown assessment session id
    StorageError                       — read/write failure in the backing store
    RecoveryError                      — no usable backup to restore from

The classifier never raises any of these.
"""


class TriageError(Exception):
    """Base exception for all triage SDK errors."""


class ValidationError(TriageError, ValueError):
    """Raised when a value is rejected before it can be stored.

    ``field`` names the offending input (a question id such as
    ``"painLevel"`` or a payload path such as ``"patients[2].esi"``).
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidStateError(TriageError, ValueError):
    """Raised when an operation is not valid in the object's current state."""


class StorageError(TriageError):
    """Raised when the backing store cannot be read or written."""


class RecoveryError(TriageError):
    """Raised when the backup is missing or unusable."""


class PatientNotFoundError(TriageError, KeyError):
    """Raised when a patient id is not present in the queue."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else "Patient not found"


class SessionNotFoundError(TriageError, KeyError):
    """Raised when an assessment session id is unknown."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Session not found"
