"""triage_store — durable storage for the shared patient queue.

Public API:
    JsonFileStorage   — atomic JSON document store with a backup copy
    QueueRepository   — serialised append / replace / update / recover
"""

from triage_store.repository import QueueRepository
from triage_store.storage import JsonFileStorage

__all__ = ["JsonFileStorage", "QueueRepository"]
