"""Video library business logic."""
import math
import uuid
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import settings
from studio.models.video import Video
from studio.schemas.video import ExternalVideoCreate, ReorderItem, VideoPage, VideoResponse, VideoUpdate
from studio.services.storage_service import StorageBackend, get_storage
from studio.services.thumbnail_service import NO_RESULT, CaptureResult, ThumbnailGenerator


def split_categories(values: Iterable[str | None]) -> list[str]:
    """Distinct, trimmed categories from comma-separated category fields, in first-seen order."""
    seen: list[str] = []
    for value in values:
        for part in (value or "").split(","):
            name = part.strip()
            if name and name not in seen:
                seen.append(name)
    return seen


def video_to_response(video: Video, storage: StorageBackend | None = None) -> VideoResponse:
    storage = storage or get_storage()
    public_url = storage.public_url(settings.VIDEO_BUCKET, video.file_path) if video.file_path else video.external_url
    return VideoResponse(
        id=video.id,
        title=video.title,
        description=video.description,
        category=video.category,
        tags=video.tags,
        source_type=video.source_type,
        external_url=video.external_url,
        file_path=video.file_path,
        thumbnail_path=video.thumbnail_path,
        public_url=public_url,
        thumbnail_url=storage.public_url(settings.THUMBNAIL_BUCKET, video.thumbnail_path),
        is_public=video.is_public is not False,
        is_featured=bool(video.is_featured),
        order_index=video.order_index or 0,
        view_count=video.view_count or 0,
        created_at=video.created_at,
    )


def video_source_locator(video: Video, storage: StorageBackend | None = None) -> str | None:
    """Where the thumbnail generator should read this video from: local file first, then URL."""
    storage = storage or get_storage()
    if video.file_path:
        try:
            path = storage.local_path(settings.VIDEO_BUCKET, video.file_path)
        except ValueError:
            path = None
        if path is not None and path.is_file():
            return str(path)
        return storage.public_url(settings.VIDEO_BUCKET, video.file_path)
    return video.external_url


def _apply_filters(q, *, include_private: bool, search: str | None, source_type: str | None, status: str, tab: str):
    if not include_private:
        q = q.where(Video.is_public.is_(True))
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        q = q.where(
            or_(
                Video.title.ilike(pattern),
                Video.description.ilike(pattern),
                Video.tags.ilike(pattern),
                Video.category.ilike(pattern),
            )
        )
    if source_type and source_type != "all":
        q = q.where(Video.source_type == source_type)
    if status == "public":
        q = q.where(Video.is_public.is_(True))
    elif status == "private":
        q = q.where(Video.is_public.is_(False))
    elif status == "featured":
        q = q.where(Video.is_featured.is_(True))
    elif status == "unfeatured":
        q = q.where(Video.is_featured.is_(False))
    if tab == "featured":
        q = q.where(Video.is_featured.is_(True))
    return q


def _ordering(tab: str):
    if tab == "latest":
        return (desc(Video.created_at),)
    if tab == "trending":
        return (desc(Video.view_count), Video.order_index)
    return (Video.order_index, Video.created_at)


async def list_videos(
    db: AsyncSession,
    *,
    include_private: bool = False,
    search: str | None = None,
    source_type: str | None = None,
    status: str = "all",
    tab: str = "home",
    page: int = 1,
    page_size: int = 12,
) -> VideoPage:
    filtered = _apply_filters(
        select(Video),
        include_private=include_private,
        search=search,
        source_type=source_type,
        status=status,
        tab=tab,
    )
    total = (await db.execute(select(func.count()).select_from(filtered.subquery()))).scalar_one()
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(1, page), total_pages)
    result = await db.execute(
        filtered.order_by(*_ordering(tab)).offset((page - 1) * page_size).limit(page_size)
    )
    videos = list(result.scalars().all())

    category_q = select(Video.category).where(Video.category.is_not(None))
    if not include_private:
        category_q = category_q.where(Video.is_public.is_(True))
    categories = split_categories((await db.execute(category_q.order_by(Video.order_index))).scalars().all())

    storage = get_storage()
    return VideoPage(
        items=[video_to_response(v, storage) for v in videos],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        categories=categories,
    )


async def get_video(db: AsyncSession, video_id: UUID) -> Video | None:
    result = await db.execute(select(Video).where(Video.id == video_id))
    return result.scalar_one_or_none()


async def _insert_at(db: AsyncSession, video: Video, position: int) -> Video:
    """Insert ``video`` at ``position`` in the library order, shifting later videos down."""
    count = (await db.execute(select(func.count(Video.id)))).scalar_one()
    position = min(max(0, position), count)
    await db.execute(
        update(Video).where(Video.order_index >= position).values(order_index=Video.order_index + 1)
    )
    video.order_index = position
    db.add(video)
    await db.flush()
    await db.refresh(video)
    return video


async def create_external_video(db: AsyncSession, data: ExternalVideoCreate) -> Video:
    video = Video(
        title=data.title,
        description=data.description,
        category=data.category,
        tags=data.tags,
        source_type="external",
        external_url=str(data.url),
    )
    return await _insert_at(db, video, data.position)


async def create_uploaded_video(
    db: AsyncSession,
    *,
    title: str,
    file_path: str,
    description: str | None = None,
    category: str | None = None,
    tags: str | None = None,
    position: int = 0,
) -> Video:
    video = Video(
        title=title,
        description=description,
        category=category,
        tags=tags,
        source_type="upload",
        file_path=file_path,
    )
    return await _insert_at(db, video, position)


async def update_video(db: AsyncSession, video: Video, data: VideoUpdate) -> Video:
    changes = data.model_dump(exclude_unset=True)
    for field in ("external_url", "file_path", "thumbnail_path"):
        if field in changes and isinstance(changes[field], str):
            changes[field] = changes[field].strip() or None
    if changes.get("title") is None:
        changes.pop("title", None)
    for field, value in changes.items():
        setattr(video, field, value)
    await db.flush()
    await db.refresh(video)
    return video


def stored_files(video: Video) -> list[tuple[str, str]]:
    """(bucket, path) pairs this video owns in storage."""
    files = []
    if video.file_path:
        files.append((settings.VIDEO_BUCKET, video.file_path))
    if video.thumbnail_path:
        files.append((settings.THUMBNAIL_BUCKET, video.thumbnail_path))
    return files


def remove_files(files: list[tuple[str, str]], storage: StorageBackend | None = None) -> None:
    storage = storage or get_storage()
    for bucket, path in files:
        storage.delete(bucket, path)


async def delete_video(db: AsyncSession, video: Video) -> list[tuple[str, str]]:
    """Delete the record and close the gap it leaves in the order.

    Stored files are left in place and returned; remove them with ``remove_files``
    once the transaction has committed.
    """
    files = stored_files(video)
    position = video.order_index or 0
    await db.delete(video)
    await db.flush()
    await db.execute(
        update(Video).where(Video.order_index > position).values(order_index=Video.order_index - 1)
    )
    return files


async def toggle_public(db: AsyncSession, video: Video) -> Video:
    video.is_public = video.is_public is False
    await db.flush()
    return video


async def toggle_featured(db: AsyncSession, video: Video) -> Video:
    video.is_featured = not video.is_featured
    await db.flush()
    return video


async def reorder_videos(db: AsyncSession, items: list[ReorderItem]) -> int:
    """Apply explicit order indexes. Returns how many videos were updated."""
    updated = 0
    for item in items:
        result = await db.execute(
            update(Video).where(Video.id == item.id).values(order_index=item.order_index)
        )
        updated += result.rowcount or 0
    return updated


async def record_view(db: AsyncSession, video: Video) -> int:
    video.view_count = (video.view_count or 0) + 1
    await db.flush()
    return video.view_count


async def set_thumbnail_path(db: AsyncSession, video: Video, path: str | None) -> Video:
    video.thumbnail_path = path
    await db.flush()
    return video


def store_thumbnail(video: Video, image: bytes, storage: StorageBackend | None = None) -> str:
    """Write JPEG bytes to the video's thumbnail path, overwriting it, or to a new path."""
    storage = storage or get_storage()
    path = video.thumbnail_path
    if path and not path.lower().endswith(".jpg"):
        # A custom PNG/WebP upload is replaced, not overwritten with JPEG bytes.
        storage.delete(settings.THUMBNAIL_BUCKET, path)
        path = None
    return storage.upload(settings.THUMBNAIL_BUCKET, path or f"{uuid.uuid4().hex}.jpg", image, upsert=True)


async def capture_thumbnail(
    db: AsyncSession,
    video: Video,
    seconds: float | None = None,
    generator: ThumbnailGenerator | None = None,
    storage: StorageBackend | None = None,
) -> CaptureResult:
    """Capture a frame from the video and store it as its thumbnail. Falsy result when none was produced."""
    storage = storage or get_storage()
    source = video_source_locator(video, storage)
    if not source:
        return NO_RESULT
    generator = generator or ThumbnailGenerator()
    result = await generator.generate(source, seconds)
    if result:
        await set_thumbnail_path(db, video, store_thumbnail(video, result.image, storage))
    return result
