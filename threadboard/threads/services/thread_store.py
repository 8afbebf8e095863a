from typing import List, Optional, Dict, Any, Union
from datetime import datetime
from bson import ObjectId
from bson.errors import BSONError
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError
import logging
from motor.motor_asyncio import AsyncIOMotorCollection

from threadboard.core.config import settings
from threadboard.core.exceptions import (
    DatabaseConnectionError,
    NotFoundError,
    PersistenceError,
    ThreadStoreError,
    ValidationError,
)
from threadboard.db.mongodb import MongoDBConnection, ensure_object_id
from threadboard.db.redis import PathRevalidator
from threadboard.threads.schemas.thread_document import ThreadDocument
from threadboard.threads.schemas.thread_schemas import PostsPage, ThreadNode, create_thread_node

logger = logging.getLogger(__name__)

# Author projection for the thread being fetched
AUTHOR_FIELDS = {"_id": 1, "id": 1, "name": 1, "image": 1}
# Author projection for replies; parent_id is not a user field and comes back absent
CHILD_AUTHOR_FIELDS = {"_id": 1, "id": 1, "name": 1, "parent_id": 1, "image": 1}

TOP_LEVEL_FILTER = {"parent_id": None}


# Raised while encoding a command to BSON, before anything reaches the server
ENCODING_ERRORS = (BSONError, OverflowError, UnicodeEncodeError)
STORE_ERRORS = (PyMongoError,) + ENCODING_ERRORS

# Largest skip MongoDB accepts (signed 64-bit)
MAX_SKIP = 2 ** 63 - 1


def _wrap_error(operation: str, error: Exception) -> ThreadStoreError:
    if isinstance(error, ENCODING_ERRORS):
        return ValidationError(operation, f"value cannot be stored: {error}")
    if isinstance(error, ConnectionFailure):
        return DatabaseConnectionError(operation, str(error))
    return PersistenceError(operation, str(error))


class ThreadStore:
    """
    MongoDB data access for threads and their replies.

    Every operation opens (or reuses) the injected connection, performs a few
    sequential reads and writes and, for mutations, emits a single stale-path
    signal once the writes have succeeded. No operation is transactional:
    concurrent writers to the same thread are last-write-wins.
    """

    def __init__(self, connection: MongoDBConnection, revalidator: PathRevalidator):
        self.connection = connection
        self.revalidator = revalidator

    async def _collections(self, operation: str):
        try:
            await self.connection.connect()
        except DatabaseConnectionError as e:
            raise DatabaseConnectionError(operation, e.message, url=e.url) from e
        return (
            self.connection.collection(settings.THREADS_COLLECTION),
            self.connection.collection(settings.USERS_COLLECTION),
        )

    async def create_thread(
        self,
        text: str,
        author: str,
        community_id: Optional[str],
        path: str,
    ) -> None:
        """
        Insert a top-level thread and append it to the author's threads.

        ``community_id`` is accepted but not persisted: community is always null.
        """
        operation = "create thread"
        if not text or not text.strip():
            raise ValidationError(operation, "text must not be empty")
        author_obj = ensure_object_id(author)
        if author_obj is None:
            raise ValidationError(operation, f"invalid author id '{author}'")

        try:
            threads, users = await self._collections(operation)

            thread_doc: ThreadDocument = {
                "_id": ObjectId(),
                "text": text,
                "author": author_obj,
                "community": None,
                "parent_id": None,
                "children": [],
                "likes": [],
                "created_at": datetime.utcnow(),
            }
            result = await threads.insert_one(thread_doc)

            user_update = await users.update_one(
                {"_id": author_obj},
                {"$push": {"threads": result.inserted_id}}
            )
            if user_update.matched_count == 0:
                logger.warning(f"Author {author} not found; thread {result.inserted_id} not linked to a user")
        except ThreadStoreError:
            raise
        except STORE_ERRORS as e:
            logger.error(f"Error creating thread: {e}")
            raise _wrap_error(operation, e) from e

        await self.revalidator.revalidate(path)

    async def fetch_posts(self, page_number: int = 1, page_size: Optional[int] = None) -> PostsPage:
        """Get one page of top-level threads, newest first, with direct replies resolved"""
        operation = "fetch posts"
        if page_size is None:
            page_size = settings.DEFAULT_PAGE_SIZE
        if page_number < 1:
            raise ValidationError(operation, f"page_number must be >= 1, got {page_number}")
        if page_size < 1:
            raise ValidationError(operation, f"page_size must be >= 1, got {page_size}")

        skip_amount = (page_number - 1) * page_size
        if skip_amount > MAX_SKIP or page_size > MAX_SKIP:
            raise ValidationError(operation, f"page {page_number} of size {page_size} is out of range")

        try:
            threads, users = await self._collections(operation)

            cursor = threads.find(
                TOP_LEVEL_FILTER,
                sort=[("created_at", DESCENDING)],
                skip=skip_amount,
                limit=page_size
            )
            documents = await cursor.to_list(length=None)

            total_posts_count = await threads.count_documents(TOP_LEVEL_FILTER)

            posts = [
                await self.resolve_thread_tree(doc, depth=1, threads=threads, users=users)
                for doc in documents
            ]
        except ThreadStoreError:
            raise
        except STORE_ERRORS as e:
            logger.error(f"Error fetching posts: {e}")
            raise _wrap_error(operation, e) from e

        is_next = total_posts_count > skip_amount + len(posts)
        return PostsPage(posts=posts, is_next=is_next)

    async def fetch_thread_by_id(self, thread_id: str) -> Optional[ThreadNode]:
        """
        Get a thread with its reply tree resolved to ``THREAD_TREE_DEPTH`` levels.
        Returns None when no thread has this id.
        """
        operation = "fetch thread"
        thread_obj = ensure_object_id(thread_id)
        if thread_obj is None:
            raise ValidationError(operation, f"invalid thread id '{thread_id}'")

        try:
            threads, users = await self._collections(operation)

            thread = await threads.find_one({"_id": thread_obj})
            if not thread:
                return None

            return await self.resolve_thread_tree(
                thread,
                depth=settings.THREAD_TREE_DEPTH,
                threads=threads,
                users=users,
            )
        except ThreadStoreError:
            raise
        except STORE_ERRORS as e:
            logger.error(f"Error fetching thread {thread_id}: {e}")
            raise _wrap_error(operation, e) from e

    async def resolve_thread_tree(
        self,
        thread: Dict[str, Any],
        depth: int,
        threads: AsyncIOMotorCollection,
        users: AsyncIOMotorCollection,
        author_fields: Optional[Dict[str, int]] = None,
    ) -> ThreadNode:
        """
        Resolve a thread document's author and, while ``depth > 0``, its replies.

        Replies are loaded in stored ``children`` order and resolved with
        ``depth - 1``; at depth 0 the children stay as id strings. Child ids
        that match no document are dropped.
        """
        author = await users.find_one(
            {"_id": thread.get("author")},
            author_fields or AUTHOR_FIELDS
        )

        child_ids: List[ObjectId] = thread.get("children", [])
        if depth <= 0 or not child_ids:
            return create_thread_node(thread, author)

        child_docs = await threads.find({"_id": {"$in": child_ids}}).to_list(length=None)
        by_id = {doc["_id"]: doc for doc in child_docs}

        children: List[Union[ThreadNode, str]] = []
        for child_id in child_ids:
            child = by_id.get(child_id)
            if child is None:
                continue
            children.append(await self.resolve_thread_tree(
                child,
                depth - 1,
                threads=threads,
                users=users,
                author_fields=CHILD_AUTHOR_FIELDS,
            ))

        return create_thread_node(thread, author, children)

    async def add_comment_to_thread(
        self,
        thread_id: str,
        comment_text: str,
        user_id: str,
        path: str,
    ) -> None:
        """
        Create a reply and append its id to the parent's children.

        The reply insert and the parent update are two separate writes; a
        failure between them leaves a reply that its parent does not list.
        """
        operation = "add comment to thread"
        if not comment_text or not comment_text.strip():
            raise ValidationError(operation, "comment text must not be empty")
        thread_obj = ensure_object_id(thread_id)
        if thread_obj is None:
            raise ValidationError(operation, f"invalid thread id '{thread_id}'")
        user_obj = ensure_object_id(user_id)
        if user_obj is None:
            raise ValidationError(operation, f"invalid user id '{user_id}'")

        try:
            threads, _ = await self._collections(operation)

            original_thread = await threads.find_one({"_id": thread_obj}, {"_id": 1})
            if not original_thread:
                raise NotFoundError(operation, "Thread not found")

            comment_doc: ThreadDocument = {
                "_id": ObjectId(),
                "text": comment_text,
                "author": user_obj,
                "community": None,
                "parent_id": thread_obj,
                "children": [],
                "likes": [],
                "created_at": datetime.utcnow(),
            }
            result = await threads.insert_one(comment_doc)

            await threads.update_one(
                {"_id": thread_obj},
                {"$push": {"children": result.inserted_id}}
            )
        except ThreadStoreError:
            raise
        except STORE_ERRORS as e:
            logger.error(f"Error adding comment to thread {thread_id}: {e}")
            raise _wrap_error(operation, e) from e

        await self.revalidator.revalidate(path)

    async def like_post(
        self,
        post_id: str,
        user_id: str,
        likes: List[str],
        path: str,
    ) -> List[str]:
        """
        Toggle ``user_id`` in the caller-supplied likes and persist the result.

        The stored likes are first overwritten with ``likes`` as given, so the
        caller's list is the base of the toggle, not the stored one. Only the
        first exact match is removed; later duplicates are kept.
        """
        operation = "add like to post"
        post_obj = ensure_object_id(post_id)
        if post_obj is None:
            raise ValidationError(operation, f"invalid post id '{post_id}'")

        try:
            threads, _ = await self._collections(operation)

            # TODO: read the stored likes instead of trusting the caller's list once clients send only user_id
            thread = await threads.find_one_and_update(
                {"_id": post_obj},
                {"$set": {"likes": list(likes)}},
                return_document=ReturnDocument.AFTER
            )
            if thread is None:
                raise NotFoundError(operation, "Thread not found")

            updated_likes: List[str] = list(thread.get("likes", []))
            if user_id and user_id.strip() != "":
                try:
                    index_to_remove = updated_likes.index(user_id)
                except ValueError:
                    updated_likes.append(user_id)
                else:
                    del updated_likes[index_to_remove]

            # Saved twice; the second write leaves the document unchanged
            for _ in range(2):
                await threads.update_one(
                    {"_id": post_obj},
                    {"$set": {"likes": updated_likes}}
                )
        except ThreadStoreError:
            raise
        except STORE_ERRORS as e:
            logger.error(f"Error liking post {post_id}: {e}")
            raise _wrap_error(operation, e) from e

        await self.revalidator.revalidate(path)
        return updated_likes
