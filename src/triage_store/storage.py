"""JSON file implementation of :class:`~triage_engine.interfaces.QueueStorage`.

Files::

    patients.json          — primary document {patients, lastId}
    patients.backup.json   — copy of the previous primary

Every write lands in a temporary file in the same directory, is flushed and
fsync'd, then ``os.replace``-d over the target.  ``os.replace`` is atomic on
POSIX and Windows, so a concurrent reader sees either the old or the new
document, never a partial one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from triage_engine.errors import StorageError
from triage_engine.interfaces import QueueStorage

from triage_store.config import backup_path_for, get_data_file

logger = logging.getLogger(__name__)


class JsonFileStorage(QueueStorage):
    """Queue document stored as pretty-printed JSON on the local filesystem.

    Args:
        path: primary document path (defaults to ``TRIAGE_DATA_FILE``)
        backup_path: backup path (defaults to ``<stem>.backup<suffix>``)
    """

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        backup_path: str | Path | None = None,
    ) -> None:
        self._path = Path(path) if path is not None else get_data_file()
        self._backup_path = (
            Path(backup_path) if backup_path is not None else backup_path_for(self._path)
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def backup_path(self) -> Path:
        return self._backup_path

    @property
    def location(self) -> str:
        return str(self._path.resolve())

    # ------------------------------------------------------------------
    # QueueStorage
    # ------------------------------------------------------------------

    def read(self) -> dict | None:
        return self._read_document(self._path)

    def write(self, document: dict) -> None:
        self._backup_previous()
        self._atomic_write(self._path, document)
        logger.debug("Wrote queue document to %s", self._path)

    def read_backup(self) -> dict | None:
        return self._read_document(self._backup_path)

    def restore(self, document: dict) -> None:
        self._atomic_write(self._path, document)

    def backup_exists(self) -> bool:
        return self._backup_path.exists()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_document(path: Path) -> dict | None:
        """Parse ``path`` as a JSON object; None if the file does not exist."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt JSON in {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise StorageError(
                f"Expected a JSON object in {path}, got {type(document).__name__}"
            )
        return document

    def _backup_previous(self) -> None:
        """Copy the current primary to the backup slot, best effort.

        Only a primary that parses as a JSON object is copied, so a corrupt
        primary never overwrites the last good backup.
        """
        try:
            previous = self._read_document(self._path)
        except StorageError as exc:
            logger.warning("Skipping backup, current primary is unreadable: %s", exc)
            return
        if previous is None:
            return
        try:
            self._atomic_write(self._backup_path, previous)
        except StorageError as exc:
            logger.warning("Could not create backup: %s", exc)

    @staticmethod
    def _atomic_write(path: Path, document: dict) -> None:
        """Write ``document`` to ``path`` via temp file + fsync + rename."""
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(document, tmp, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name)
