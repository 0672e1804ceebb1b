import pytest

from triage_engine.catalog import CatalogStore
from triage_engine.engine import AssessmentEngine
from triage_store.repository import QueueRepository

from helpers.storage import MemoryStorage


@pytest.fixture(scope="session")
def store():
    """Load the full CatalogStore once for the entire test session."""
    s = CatalogStore()
    s.load()
    return s


@pytest.fixture
def vitals_engine(store):
    return AssessmentEngine(store, "vitals")


@pytest.fixture
def progression_engine(store):
    return AssessmentEngine(store, "progression")


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def repository(memory_storage):
    return QueueRepository(memory_storage)
