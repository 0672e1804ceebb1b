"""In-memory QueueStorage for repository and server tests.

Behaves like JsonFileStorage (documents are deep-copied in and out, the
previous primary becomes the backup on write) without touching disk.
``fail_writes`` makes every write raise StorageError so tests can check
that a failed write leaves the queue untouched.
"""

import copy
import itertools

from triage_engine.errors import StorageError
from triage_engine.interfaces import QueueStorage

_ids = itertools.count(1)


class MemoryStorage(QueueStorage):

    def __init__(self, document: dict | None = None, backup: dict | None = None):
        self._location = f"memory://{next(_ids)}"
        self.primary = copy.deepcopy(document)
        self.backup = copy.deepcopy(backup)
        self.corrupt = False
        self.fail_writes = False
        self.writes = 0

    @property
    def location(self) -> str:
        return self._location

    def read(self) -> dict | None:
        if self.corrupt:
            raise StorageError("Corrupt JSON in memory store")
        return copy.deepcopy(self.primary)

    def write(self, document: dict) -> None:
        if self.fail_writes:
            raise StorageError("Simulated write failure")
        if self.primary is not None and not self.corrupt:
            self.backup = copy.deepcopy(self.primary)
        self.primary = copy.deepcopy(document)
        self.corrupt = False
        self.writes += 1

    def read_backup(self) -> dict | None:
        return copy.deepcopy(self.backup)

    def restore(self, document: dict) -> None:
        if self.fail_writes:
            raise StorageError("Simulated write failure")
        self.primary = copy.deepcopy(document)
        self.corrupt = False

    def backup_exists(self) -> bool:
        return self.backup is not None
