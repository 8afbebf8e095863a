# threadboard/threads/schemas/thread_schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field
from bson import ObjectId


class AuthorSummary(BaseModel):
    """Resolved author reference"""
    id: str
    user_id: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None


class ThreadNode(BaseModel):
    """A thread with its author and, up to the resolved depth, its replies"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    author: Optional[AuthorSummary] = None
    community: Optional[str] = None
    parent_id: Optional[str] = None
    # Resolved replies, or bare ids past the resolved depth
    children: List[Union[ThreadNode, str]] = Field(default_factory=list)
    likes: List[str] = Field(default_factory=list)
    created_at: datetime


ThreadNode.model_rebuild()


class PostsPage(BaseModel):
    posts: List[ThreadNode]
    is_next: bool


# Request bodies
class ThreadCreate(BaseModel):
    text: str = Field(..., min_length=1)
    author: str
    community_id: Optional[str] = None
    path: str = "/"


class CommentCreate(BaseModel):
    comment_text: str = Field(..., min_length=1)
    user_id: str
    path: str


class LikeToggle(BaseModel):
    user_id: str
    likes: List[str] = Field(default_factory=list)
    path: str


class LikesResponse(BaseModel):
    likes: List[str]


def create_author_summary(user: Optional[Dict[str, Any]]) -> Optional[AuthorSummary]:
    """Map a projected user document onto AuthorSummary; None when the user is missing."""
    if not user:
        return None

    user_id = user.get("id")
    return AuthorSummary(
        id=str(user.get("_id", "")),
        user_id=str(user_id) if user_id is not None else None,
        name=user.get("name"),
        image=user.get("image"),
    )


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value) if isinstance(value, ObjectId) else value


def create_thread_node(
    thread: Dict[str, Any],
    author: Optional[Dict[str, Any]],
    children: Optional[List[Union[ThreadNode, str]]] = None,
) -> ThreadNode:
    """
    Build a ThreadNode from a MongoDB thread document.

    Args:
        thread: thread document with ``_id`` and ObjectId references
        author: projected user document, or None if it could not be found
        children: already-resolved replies; when omitted the stored child ids
            are kept as strings

    Returns:
        ThreadNode with every ObjectId converted to a string
    """
    if children is None:
        children = [str(child_id) for child_id in thread.get("children", [])]

    return ThreadNode(
        id=str(thread["_id"]),
        text=thread.get("text", ""),
        author=create_author_summary(author),
        community=_stringify(thread.get("community")),
        parent_id=_stringify(thread.get("parent_id")),
        children=children,
        likes=list(thread.get("likes", [])),
        created_at=thread["created_at"],
    )
