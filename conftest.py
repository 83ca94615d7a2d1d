import pytest

from core.exceptions import PersistenceFailure
from core.state_manager import StateManager
from database import build_engine
from storage.base import PersistentStore
from storage.document_store import InMemoryDocumentStore
from storage.sql_store import SqlStore


class FlakyStore(PersistentStore):
    """
    Wraps a real store; operations listed in `failing` report failure
    (writes return False, reads raise PersistenceFailure).
    """

    def __init__(self, inner: PersistentStore) -> None:
        self.inner = inner
        self.failing = set()

    def fail(self, *operations: str) -> None:
        self.failing.update(operations)

    def recover(self) -> None:
        self.failing.clear()

    def _read(self, operation, collection, *args):
        if operation in self.failing:
            raise PersistenceFailure(operation, collection, "injected failure")
        return getattr(self.inner, operation)(collection, *args)

    def _write(self, operation, collection, *args):
        if operation in self.failing:
            return False
        return getattr(self.inner, operation)(collection, *args)

    def find(self, collection, filter):
        return self._read("find", collection, filter)

    def find_one(self, collection, filter):
        return self._read("find_one", collection, filter)

    def insert_one(self, collection, record):
        return self._write("insert_one", collection, record)

    def update_one(self, collection, filter, fields):
        return self._write("update_one", collection, filter, fields)

    def upsert_one(self, collection, filter, fields):
        return self._write("upsert_one", collection, filter, fields)

    def delete_one(self, collection, filter):
        return self._write("delete_one", collection, filter)

    def delete_many(self, collection, filter):
        return self._write("delete_many", collection, filter)

    def close(self):
        self.inner.close()


def make_sql_store() -> SqlStore:
    store = SqlStore(build_engine("sqlite://"))
    store.create_tables()
    return store


@pytest.fixture(params=["memory", "sql"])
def store(request):
    backend = InMemoryDocumentStore() if request.param == "memory" else make_sql_store()
    yield backend
    backend.close()


@pytest.fixture
def flaky(store) -> FlakyStore:
    return FlakyStore(store)


@pytest.fixture
def manager(flaky) -> StateManager:
    return StateManager(flaky).load()
