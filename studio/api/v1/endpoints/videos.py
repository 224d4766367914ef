"""Video library: listing, admin CRUD, ordering and uploads."""
import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_admin, get_db, get_site_viewer
from studio.api.files import VIDEO_TYPES, read_limited, validate_content_type
from studio.core.config import settings
from studio.models.user import User
from studio.models.video import Video
from studio.schemas.video import ExternalVideoCreate, ReorderItem, VideoPage, VideoResponse, VideoUpdate
from studio.services.storage_service import get_storage
from studio.services import video_service
from studio.workers.thumbnails import generate_video_thumbnail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


async def _get_video_or_404(db: AsyncSession, video_id: UUID) -> Video:
    video = await video_service.get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


async def _get_visible_video(db: AsyncSession, video_id: UUID, viewer: User | None) -> Video:
    """Private videos exist only for admins."""
    video = await _get_video_or_404(db, video_id)
    if video.is_public is False and not (viewer and viewer.is_admin):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


def _enqueue_thumbnail(video: Video) -> None:
    try:
        generate_video_thumbnail.delay(str(video.id))
    except Exception as e:
        # The record itself is committed; a thumbnail can still be captured manually.
        logger.warning("[Videos] Failed to enqueue thumbnail task for %s: %s", video.id, e)


@router.get("", response_model=VideoPage)
async def list_videos(
    q: str | None = Query(None, max_length=200),
    source_type: Literal["all", "upload", "external"] = "all",
    status_filter: Literal["all", "public", "private", "featured", "unfeatured"] = Query("all", alias="status"),
    tab: Literal["home", "latest", "trending", "featured"] = "home",
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    viewer: User | None = Depends(get_site_viewer),
    db: AsyncSession = Depends(get_db),
):
    """Public listing. Admins also see private videos and may filter on visibility."""
    is_admin = viewer is not None and viewer.is_admin
    return await video_service.list_videos(
        db,
        include_private=is_admin,
        search=q,
        source_type=source_type,
        status=status_filter if is_admin else "all",
        tab=tab,
        page=page,
        page_size=page_size,
    )


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: UUID,
    viewer: User | None = Depends(get_site_viewer),
    db: AsyncSession = Depends(get_db),
):
    return video_service.video_to_response(await _get_visible_video(db, video_id, viewer))


@router.post("/{video_id}/view")
async def record_view(
    video_id: UUID,
    viewer: User | None = Depends(get_site_viewer),
    db: AsyncSession = Depends(get_db),
):
    """Record a view. Returns the updated count."""
    video = await _get_visible_video(db, video_id, viewer)
    return {"view_count": await video_service.record_view(db, video)}


@router.post("/external", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def add_external_video(
    data: ExternalVideoCreate,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    video = await video_service.create_external_video(db, data)
    await db.commit()
    _enqueue_thumbnail(video)
    return video_service.video_to_response(video)


@router.post("/upload", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def upload_video(
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    description: str | None = Form(None),
    category: str | None = Form(None),
    tags: str | None = Form(None),
    position: int = Form(0, ge=0),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    ext = validate_content_type(file, VIDEO_TYPES)
    data = await read_limited(file, max_size_mb=settings.MAX_VIDEO_UPLOAD_MB)
    storage = get_storage()
    file_path = storage.save(settings.VIDEO_BUCKET, data, ext)
    try:
        video = await video_service.create_uploaded_video(
            db,
            title=title,
            file_path=file_path,
            description=description,
            category=category,
            tags=tags,
            position=position,
        )
        await db.commit()
    except Exception:
        storage.delete(settings.VIDEO_BUCKET, file_path)
        raise
    _enqueue_thumbnail(video)
    return video_service.video_to_response(video, storage)


@router.patch("/{video_id}", response_model=VideoResponse)
async def update_video(
    video_id: UUID,
    data: VideoUpdate,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    video = await _get_video_or_404(db, video_id)
    video = await video_service.update_video(db, video, data)
    return video_service.video_to_response(video)


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: UUID,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    video = await _get_video_or_404(db, video_id)
    files = await video_service.delete_video(db, video)
    await db.commit()
    video_service.remove_files(files)


@router.post("/{video_id}/toggle-public", response_model=VideoResponse)
async def toggle_public(
    video_id: UUID,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    video = await video_service.toggle_public(db, await _get_video_or_404(db, video_id))
    return video_service.video_to_response(video)


@router.post("/{video_id}/toggle-featured", response_model=VideoResponse)
async def toggle_featured(
    video_id: UUID,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    video = await video_service.toggle_featured(db, await _get_video_or_404(db, video_id))
    return video_service.video_to_response(video)


@router.put("/order")
async def reorder_videos(
    items: list[ReorderItem],
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    if len({item.id for item in items}) != len(items):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate video ids in order")
    return {"updated": await video_service.reorder_videos(db, items)}
