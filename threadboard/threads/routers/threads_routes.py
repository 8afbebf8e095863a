"""
Threads router.
Thin HTTP layer over ThreadStore; error kinds are mapped to statuses in main.py.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status

from threadboard.core.config import settings
from threadboard.threads.schemas.thread_schemas import (
    CommentCreate,
    LikeToggle,
    LikesResponse,
    PostsPage,
    ThreadCreate,
    ThreadNode,
)
from threadboard.threads.services.thread_store import ThreadStore

router = APIRouter(prefix="/threads", tags=["threads"])


def get_thread_store(request: Request) -> ThreadStore:
    """ThreadStore built by the application lifespan"""
    return request.app.state.thread_store


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_thread(
    body: ThreadCreate,
    store: ThreadStore = Depends(get_thread_store)
):
    await store.create_thread(
        text=body.text,
        author=body.author,
        community_id=body.community_id,
        path=body.path,
    )
    return {"success": True}


@router.get("", response_model=PostsPage)
async def fetch_posts(
    page_number: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    store: ThreadStore = Depends(get_thread_store)
):
    """Top-level threads, newest first"""
    return await store.fetch_posts(page_number=page_number, page_size=page_size)


@router.get("/{thread_id}", response_model=ThreadNode)
async def fetch_thread(
    thread_id: str = Path(..., description="The ID of the thread"),
    store: ThreadStore = Depends(get_thread_store)
):
    thread = await store.fetch_thread_by_id(thread_id)
    if thread is None:
        raise HTTPException(status_code=404, detail="Thread not found")
    return thread


@router.post(
    "/{thread_id}/comments",
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Thread not found"}}
)
async def add_comment(
    body: CommentCreate,
    thread_id: str = Path(..., description="The ID of the thread to reply to"),
    store: ThreadStore = Depends(get_thread_store)
):
    await store.add_comment_to_thread(
        thread_id=thread_id,
        comment_text=body.comment_text,
        user_id=body.user_id,
        path=body.path,
    )
    return {"success": True}


@router.post("/{post_id}/like", response_model=LikesResponse)
async def like_post(
    body: LikeToggle,
    post_id: str = Path(..., description="The ID of the post to like"),
    store: ThreadStore = Depends(get_thread_store)
):
    """Toggle the user's like and return the updated likes"""
    likes = await store.like_post(
        post_id=post_id,
        user_id=body.user_id,
        likes=body.likes,
        path=body.path,
    )
    return LikesResponse(likes=likes)
