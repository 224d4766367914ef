"""Forum threads and replies."""
from uuid import UUID

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.models.forum import ForumPost, ForumThread
from studio.models.user import User
from studio.schemas.forum import ThreadCreate, ThreadResponse, ThreadUpdate


def thread_to_response(thread: ForumThread, reply_count: int = 0) -> ThreadResponse:
    return ThreadResponse(
        id=thread.id,
        user_id=thread.user_id,
        title=thread.title,
        content=thread.content,
        category=thread.category or "General",
        link_url=thread.link_url,
        author_name=thread.author_name,
        author_avatar=thread.author_avatar,
        view_count=thread.view_count or 0,
        reply_count=reply_count,
        created_at=thread.created_at,
    )


def can_modify(user: User, owner_id: UUID | None) -> bool:
    return user.is_admin or (owner_id is not None and owner_id == user.id)


def _reply_counts():
    return (
        select(ForumPost.thread_id, func.count(ForumPost.id).label("reply_count"))
        .group_by(ForumPost.thread_id)
        .subquery()
    )


async def list_threads(
    db: AsyncSession,
    category: str | None = None,
    search: str | None = None,
) -> list[ThreadResponse]:
    counts = _reply_counts()
    q = (
        select(ForumThread, func.coalesce(counts.c.reply_count, 0))
        .outerjoin(counts, counts.c.thread_id == ForumThread.id)
        .order_by(desc(ForumThread.created_at))
    )
    if category and category != "All":
        q = q.where(ForumThread.category == category)
    term = (search or "").strip()
    if term:
        q = q.where(ForumThread.title.ilike(f"%{term}%"))
    result = await db.execute(q)
    return [thread_to_response(thread, count) for thread, count in result.all()]


async def get_thread(db: AsyncSession, thread_id: UUID) -> ForumThread | None:
    result = await db.execute(select(ForumThread).where(ForumThread.id == thread_id))
    return result.scalar_one_or_none()


async def count_replies(db: AsyncSession, thread_id: UUID) -> int:
    result = await db.execute(select(func.count(ForumPost.id)).where(ForumPost.thread_id == thread_id))
    return result.scalar_one()


async def open_thread(db: AsyncSession, thread_id: UUID) -> ThreadResponse | None:
    """Fetch a thread and count the visit."""
    await db.execute(
        update(ForumThread)
        .where(ForumThread.id == thread_id)
        .values(view_count=func.coalesce(ForumThread.view_count, 0) + 1)
        .execution_options(synchronize_session=False)
    )
    thread = await get_thread(db, thread_id)
    if thread is None:
        return None
    await db.refresh(thread)
    return thread_to_response(thread, await count_replies(db, thread_id))


async def create_thread(db: AsyncSession, author: User, data: ThreadCreate) -> ForumThread:
    thread = ForumThread(
        user_id=author.id,
        title=data.title,
        content=data.content,
        category=data.category or "General",
        link_url=(data.link_url or "").strip() or None,
        author_name=author.full_name or "User",
        author_avatar=author.avatar_url,
    )
    db.add(thread)
    await db.flush()
    await db.refresh(thread)
    return thread


async def update_thread(db: AsyncSession, thread: ForumThread, data: ThreadUpdate) -> ForumThread:
    changes = data.model_dump(exclude_unset=True)
    if "link_url" in changes:
        changes["link_url"] = (changes["link_url"] or "").strip() or None
    for field, value in changes.items():
        if value is None and field != "link_url":
            continue
        setattr(thread, field, value)
    await db.flush()
    await db.refresh(thread)
    return thread


async def list_posts(db: AsyncSession, thread_id: UUID) -> list[ForumPost]:
    result = await db.execute(
        select(ForumPost).where(ForumPost.thread_id == thread_id).order_by(ForumPost.created_at)
    )
    return list(result.scalars().all())


async def get_post(db: AsyncSession, post_id: UUID) -> ForumPost | None:
    result = await db.execute(select(ForumPost).where(ForumPost.id == post_id))
    return result.scalar_one_or_none()


async def create_post(db: AsyncSession, thread: ForumThread, author: User, content: str) -> ForumPost:
    post = ForumPost(
        thread_id=thread.id,
        user_id=author.id,
        content=content,
        author_name=author.full_name or "User",
        author_avatar=author.avatar_url,
    )
    db.add(post)
    await db.flush()
    await db.refresh(post)
    return post
