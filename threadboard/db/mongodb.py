# threadboard/db/mongodb.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from typing import Any, Optional, Union, cast
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError
from bson import ObjectId

from threadboard.core.config import settings
from threadboard.core.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


class MongoDBConnection:
    """
    Explicit handle on the MongoDB client used by the thread store.

    The handle is created once (at application startup or in a test fixture)
    and passed to whoever needs it. ``connect()`` is idempotent and is awaited
    at the start of every store operation; ``close()`` releases the pool.

    A pre-built client may be injected, in which case no ping is issued and
    ``close()`` leaves the client to its owner.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        db_name: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.url = url or settings.MONGODB_URL
        self.db_name = db_name or settings.MONGODB_DB_NAME
        self._client = client
        self._owns_client = client is None
        self._db: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Open the client if needed and return the database handle."""
        if self._db is not None:
            return self._db

        if self._client is None:
            self._client = AsyncIOMotorClient(
                self.url,
                maxPoolSize=settings.MONGODB_POOL_SIZE,
                serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS,
            )
            try:
                await self._client.admin.command("ping")
            except (ConnectionFailure, PyMongoError) as e:
                logger.error(f"Could not reach MongoDB: {e}")
                self._client.close()
                self._client = None
                raise DatabaseConnectionError("connect to database", str(e), url=self.url) from e
            logger.info("Connected to MongoDB database '%s'", self.db_name)

        self._db = cast(AsyncIOMotorDatabase, self._client[self.db_name])
        return self._db

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise DatabaseConnectionError("access database", "connection is not open", url=self.url)
        return self._db

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return cast(AsyncIOMotorCollection, self.db[name])

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
            logger.info("MongoDB connection closed")
        self._db = None


# Helper functions for safer MongoDB operations
def ensure_object_id(id_value: Union[str, ObjectId, None]) -> Optional[ObjectId]:
    """
    Convert string ID to ObjectId or return the existing ObjectId.
    Returns None if conversion fails.
    """
    if isinstance(id_value, ObjectId):
        return id_value

    if not id_value:
        return None

    try:
        return ObjectId(id_value)
    except Exception as e:
        logger.debug(f"Invalid ObjectId format: {e}")
        return None


async def create_thread_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the indexes the thread store queries rely on.
    Called during application startup.
    """
    threads = db[settings.THREADS_COLLECTION]
    users = db[settings.USERS_COLLECTION]

    logger.info("Creating MongoDB indexes...")

    # Feed query: top-level threads, newest first
    await threads.create_index([("parent_id", ASCENDING), ("created_at", DESCENDING)],
                               name="feed_timeline")
    await threads.create_index("author", name="thread_author")
    await threads.create_index("children", name="thread_children")

    await users.create_index("threads", name="user_threads")

    logger.info("MongoDB indexes created successfully")
