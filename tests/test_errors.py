# tests/test_errors.py
from bson import ObjectId
import pytest
from bson.errors import InvalidDocument
from pymongo.errors import AutoReconnect, OperationFailure

from threadboard.core.config import settings
from threadboard.core.exceptions import (
    DatabaseConnectionError,
    NotFoundError,
    PersistenceError,
    ThreadStoreError,
    ValidationError,
)
from threadboard.db.mongodb import MongoDBConnection, ensure_object_id
from threadboard.threads.services.thread_store import ThreadStore


class FailingCollection:
    """Collection whose every call raises the given driver error."""

    def __init__(self, error):
        self.error = error

    async def _raise(self, *args, **kwargs):
        raise self.error

    insert_one = update_one = find_one = find_one_and_update = count_documents = _raise

    def find(self, *args, **kwargs):
        raise self.error


@pytest.fixture
def failing_store(connection, revalidator, monkeypatch):
    def _failing_store(error):
        monkeypatch.setattr(connection, "collection", lambda name: FailingCollection(error))
        return ThreadStore(connection, revalidator)
    return _failing_store


def test_error_kinds():
    assert issubclass(DatabaseConnectionError, PersistenceError)
    for error_type in (ValidationError, NotFoundError, PersistenceError):
        assert issubclass(error_type, ThreadStoreError)
    err = PersistenceError("create thread", "disk full")
    assert str(err) == "Failed to create thread: disk full"
    assert err.kind == "persistence"


async def test_write_failure_is_wrapped(failing_store, revalidator):
    store = failing_store(OperationFailure("write rejected"))

    with pytest.raises(PersistenceError) as excinfo:
        await store.create_thread("hi", str(ObjectId()), None, "/")

    assert not isinstance(excinfo.value, DatabaseConnectionError)
    assert str(excinfo.value) == "Failed to create thread: write rejected"
    assert isinstance(excinfo.value.__cause__, OperationFailure)
    assert revalidator.paths == []


STORE_CALLS = [
    (lambda s: s.create_thread("hi", str(ObjectId()), None, "/"), "create thread"),
    (lambda s: s.fetch_posts(), "fetch posts"),
    (lambda s: s.fetch_thread_by_id(str(ObjectId())), "fetch thread"),
    (lambda s: s.add_comment_to_thread(str(ObjectId()), "hi", str(ObjectId()), "/"), "add comment to thread"),
    (lambda s: s.like_post(str(ObjectId()), "u1", [], "/"), "add like to post"),
]


@pytest.mark.parametrize("call, operation", STORE_CALLS)
async def test_lost_connection_is_connection_error(failing_store, revalidator, call, operation):
    store = failing_store(AutoReconnect("connection reset"))

    with pytest.raises(DatabaseConnectionError) as excinfo:
        await call(store)

    assert excinfo.value.operation == operation
    assert revalidator.paths == []


async def test_unreachable_server_raises_connection_error(monkeypatch):
    monkeypatch.setattr(settings, "MONGODB_SERVER_SELECTION_TIMEOUT_MS", 100)
    connection = MongoDBConnection(url="mongodb://127.0.0.1:1", db_name="unreachable")

    with pytest.raises(DatabaseConnectionError) as excinfo:
        await connection.connect()

    assert excinfo.value.url == "mongodb://127.0.0.1:1"
    assert not connection.is_connected


def test_db_access_before_connect():
    connection = MongoDBConnection(url="mongodb://127.0.0.1:1")
    with pytest.raises(DatabaseConnectionError):
        connection.db


async def test_connect_is_idempotent(connection):
    first = await connection.connect()
    second = await connection.connect()
    assert first is second


def test_ensure_object_id():
    oid = ObjectId()
    assert ensure_object_id(oid) is oid
    assert ensure_object_id(str(oid)) == oid
    assert ensure_object_id("nope") is None
    assert ensure_object_id("") is None


@pytest.mark.parametrize("call, operation", STORE_CALLS)
async def test_driver_failure_is_persistence_error(failing_store, revalidator, call, operation):
    store = failing_store(OperationFailure("command failed"))

    with pytest.raises(PersistenceError) as excinfo:
        await call(store)

    assert not isinstance(excinfo.value, DatabaseConnectionError)
    assert excinfo.value.operation == operation
    assert excinfo.value.message == "command failed"
    assert revalidator.paths == []


@pytest.mark.parametrize("error", [
    UnicodeEncodeError("utf-8", "\ud800", 0, 1, "surrogates not allowed"),
    OverflowError("MongoDB can only handle up to 8-byte ints"),
    InvalidDocument("cannot encode object"),
])
@pytest.mark.parametrize("call, operation", STORE_CALLS)
async def test_unencodable_value_is_validation_error(failing_store, revalidator, error, call, operation):
    store = failing_store(error)

    with pytest.raises(ValidationError) as excinfo:
        await call(store)

    assert excinfo.value.operation == operation
    assert excinfo.value.__cause__ is error
    assert revalidator.paths == []


@pytest.mark.parametrize("call, operation", STORE_CALLS)
async def test_unreachable_server_names_operation(monkeypatch, revalidator, call, operation):
    monkeypatch.setattr(settings, "MONGODB_SERVER_SELECTION_TIMEOUT_MS", 100)
    store = ThreadStore(MongoDBConnection(url="mongodb://127.0.0.1:1"), revalidator)

    with pytest.raises(DatabaseConnectionError) as excinfo:
        await call(store)

    assert excinfo.value.operation == operation
    assert excinfo.value.url == "mongodb://127.0.0.1:1"
    assert isinstance(excinfo.value.__cause__, DatabaseConnectionError)
    assert revalidator.paths == []


async def test_page_beyond_int64_skip_is_rejected(store):
    with pytest.raises(ValidationError) as excinfo:
        await store.fetch_posts(page_number=10**19, page_size=20)

    assert excinfo.value.operation == "fetch posts"
