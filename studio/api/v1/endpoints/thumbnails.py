"""Thumbnail management for videos: capture from a frame, upload a custom image, remove."""
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_admin, get_db
from studio.api.files import IMAGE_TYPES, VIDEO_TYPES, read_limited, validate_content_type
from studio.core.config import settings
from studio.models.user import User
from studio.models.video import Video
from studio.schemas.thumbnail import ThumbnailCaptureRequest, ThumbnailResponse
from studio.services import video_service
from studio.services.storage_service import get_storage
from studio.services.thumbnail_service import CaptureResult, ThumbnailGenerator, temporary_file

router = APIRouter(prefix="/videos/{video_id}/thumbnail", tags=["thumbnails"])

CAPTURE_FAILED = "Could not generate thumbnail, try a different timestamp"


def get_thumbnail_generator() -> ThumbnailGenerator:
    return ThumbnailGenerator()


async def _get_video_or_404(db: AsyncSession, video_id: UUID) -> Video:
    video = await video_service.get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    return video


def _response(video: Video, result: CaptureResult | None = None) -> ThumbnailResponse:
    return ThumbnailResponse(
        thumbnail_path=video.thumbnail_path,
        thumbnail_url=get_storage().public_url(settings.THUMBNAIL_BUCKET, video.thumbnail_path),
        width=result.width if result else None,
        height=result.height if result else None,
        captured_at=result.timestamp if result else None,
    )


@router.post("/capture", response_model=ThumbnailResponse)
async def capture_thumbnail(
    video_id: UUID,
    data: ThumbnailCaptureRequest,
    _admin: User = Depends(get_current_admin),
    generator: ThumbnailGenerator = Depends(get_thumbnail_generator),
    db: AsyncSession = Depends(get_db),
):
    """Grab a frame at ``second`` (falling back to earlier points) and store it as the thumbnail."""
    video = await _get_video_or_404(db, video_id)
    result = await video_service.capture_thumbnail(db, video, data.second, generator=generator)
    if not result:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=CAPTURE_FAILED)
    return _response(video, result)


@router.post("/upload", response_model=ThumbnailResponse)
async def upload_thumbnail(
    video_id: UUID,
    file: UploadFile = File(...),
    _admin: User = Depends(get_current_admin),
    generator: ThumbnailGenerator = Depends(get_thumbnail_generator),
    db: AsyncSession = Depends(get_db),
):
    """Use an uploaded image as the thumbnail, or capture a frame from an uploaded video."""
    video = await _get_video_or_404(db, video_id)
    ext = validate_content_type(file, IMAGE_TYPES | VIDEO_TYPES)
    is_video = file.content_type in VIDEO_TYPES
    data = await read_limited(
        file,
        max_size_mb=settings.MAX_VIDEO_UPLOAD_MB if is_video else settings.MAX_THUMBNAIL_UPLOAD_MB,
    )
    storage = get_storage()
    result = None
    if is_video:
        with temporary_file(data, suffix=ext) as path:
            result = await generator.generate(path)
        if not result:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=CAPTURE_FAILED)
        path = video_service.store_thumbnail(video, result.image, storage)
    else:
        # Keep the stored name's extension in line with the image type.
        if video.thumbnail_path and not video.thumbnail_path.endswith(ext):
            storage.delete(settings.THUMBNAIL_BUCKET, video.thumbnail_path)
            video.thumbnail_path = None
        path = storage.upload(settings.THUMBNAIL_BUCKET, video.thumbnail_path or f"{video.id.hex}{ext}", data, upsert=True)
    await video_service.set_thumbnail_path(db, video, path)
    return _response(video, result)


@router.delete("", response_model=ThumbnailResponse)
async def remove_thumbnail(
    video_id: UUID,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    video = await _get_video_or_404(db, video_id)
    if video.thumbnail_path:
        get_storage().delete(settings.THUMBNAIL_BUCKET, video.thumbnail_path)
        await video_service.set_thumbnail_path(db, video, None)
    return _response(video)
