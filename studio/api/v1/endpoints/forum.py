"""Discussion forum: threads and replies."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_user, get_db, get_site_viewer
from studio.models.forum import ForumThread
from studio.models.user import User
from studio.schemas.forum import PostCreate, PostResponse, ThreadCreate, ThreadResponse, ThreadUpdate
from studio.services import forum_service

router = APIRouter(prefix="/forum", tags=["forum"])


async def _get_thread_or_404(db: AsyncSession, thread_id: UUID) -> ForumThread:
    thread = await forum_service.get_thread(db, thread_id)
    if not thread:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")
    return thread


def _ensure_can_modify(user: User, owner_id: UUID | None) -> None:
    if not forum_service.can_modify(user, owner_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")


@router.get("/threads", response_model=list[ThreadResponse])
async def list_threads(
    category: str | None = Query(None, max_length=50),
    q: str | None = Query(None, max_length=200),
    _viewer: User | None = Depends(get_site_viewer),
    db: AsyncSession = Depends(get_db),
):
    return await forum_service.list_threads(db, category=category, search=q)


@router.post("/threads", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
async def create_thread(
    data: ThreadCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    thread = await forum_service.create_thread(db, current_user, data)
    return forum_service.thread_to_response(thread)


@router.get("/threads/{thread_id}", response_model=ThreadResponse)
async def open_thread(
    thread_id: UUID,
    _viewer: User | None = Depends(get_site_viewer),
    db: AsyncSession = Depends(get_db),
):
    """Fetch a thread; every fetch counts as a view."""
    thread = await forum_service.open_thread(db, thread_id)
    if not thread:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")
    return thread


@router.patch("/threads/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: UUID,
    data: ThreadUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    thread = await _get_thread_or_404(db, thread_id)
    _ensure_can_modify(current_user, thread.user_id)
    thread = await forum_service.update_thread(db, thread, data)
    return forum_service.thread_to_response(thread, await forum_service.count_replies(db, thread.id))


@router.delete("/threads/{thread_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_thread(
    thread_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    thread = await _get_thread_or_404(db, thread_id)
    _ensure_can_modify(current_user, thread.user_id)
    await db.delete(thread)


@router.get("/threads/{thread_id}/posts", response_model=list[PostResponse])
async def list_posts(
    thread_id: UUID,
    _viewer: User | None = Depends(get_site_viewer),
    db: AsyncSession = Depends(get_db),
):
    await _get_thread_or_404(db, thread_id)
    return await forum_service.list_posts(db, thread_id)


@router.post("/threads/{thread_id}/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def reply(
    thread_id: UUID,
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    thread = await _get_thread_or_404(db, thread_id)
    return await forum_service.create_post(db, thread, current_user, data.content)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await forum_service.get_post(db, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    _ensure_can_modify(current_user, post.user_id)
    await db.delete(post)
