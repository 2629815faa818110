import pytest

from matchplay.store import SqliteDocumentStore
from matchplay.triggers import build_dispatcher


@pytest.fixture
def store(tmp_path):
    store = SqliteDocumentStore(tmp_path / "matchplay.db")
    store.ensure_schema()
    return store


@pytest.fixture
def wired_store(store):
    build_dispatcher(store)
    return store
