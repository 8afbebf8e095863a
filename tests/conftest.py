# tests/conftest.py
from datetime import datetime, timedelta
from typing import List, Optional

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from threadboard.core.config import settings
from threadboard.db.mongodb import MongoDBConnection
from threadboard.db.redis import PathRevalidator
from threadboard.threads.services.thread_store import ThreadStore


class RecordingRevalidator(PathRevalidator):
    """Keeps every stale-path signal it receives."""

    def __init__(self):
        self.paths: List[str] = []

    async def revalidate(self, path: str) -> bool:
        self.paths.append(path)
        return True


@pytest.fixture
def connection():
    conn = MongoDBConnection(client=AsyncMongoMockClient(), db_name="threadboard_test")
    yield conn
    conn.close()


@pytest.fixture
def revalidator():
    return RecordingRevalidator()


@pytest.fixture
def store(connection, revalidator):
    return ThreadStore(connection, revalidator)


@pytest.fixture
async def db(connection):
    return await connection.connect()


@pytest.fixture
def threads(db):
    return db[settings.THREADS_COLLECTION]


@pytest.fixture
def users(db):
    return db[settings.USERS_COLLECTION]


@pytest.fixture
def make_user(users):
    async def _make_user(name: str = "alice", image: Optional[str] = None) -> str:
        user_id = ObjectId()
        await users.insert_one({
            "_id": user_id,
            "id": f"user_{name}",
            "name": name,
            "image": image or f"https://img.example/{name}.png",
            "threads": [],
        })
        return str(user_id)
    return _make_user


@pytest.fixture
def insert_thread(threads):
    """Insert a thread document directly, bypassing the store."""
    base_time = datetime(2024, 1, 1)

    async def _insert_thread(
        text: str,
        author: str,
        minutes: int = 0,
        parent_id: Optional[ObjectId] = None,
    ) -> ObjectId:
        thread_id = ObjectId()
        await threads.insert_one({
            "_id": thread_id,
            "text": text,
            "author": ObjectId(author),
            "community": None,
            "parent_id": parent_id,
            "children": [],
            "likes": [],
            "created_at": base_time + timedelta(minutes=minutes),
        })
        if parent_id is not None:
            await threads.update_one({"_id": parent_id}, {"$push": {"children": thread_id}})
        return thread_id
    return _insert_thread
