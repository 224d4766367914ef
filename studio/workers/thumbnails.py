"""Celery tasks for thumbnail generation."""
import asyncio
import logging
from uuid import UUID

from studio.core.celery_app import celery_app
from studio.db.session import engine, session_scope
from studio.services import video_service

logger = logging.getLogger(__name__)


async def _generate(video_id: UUID, seconds: float | None) -> bool:
    try:
        async with session_scope() as session:
            video = await video_service.get_video(session, video_id)
            if video is None:
                logger.warning("[Thumbnails] Video %s no longer exists", video_id)
                return False
            if video.thumbnail_path and seconds is None:
                # Only explicit requests replace an existing thumbnail.
                return True
            result = await video_service.capture_thumbnail(session, video, seconds)
    finally:
        # Pooled connections are bound to this task's event loop.
        await engine.dispose()
    if not result:
        logger.warning("[Thumbnails] No thumbnail could be produced for video %s", video_id)
    return bool(result)


@celery_app.task
def generate_video_thumbnail(video_id: str, seconds: float | None = None) -> bool:
    """Capture a frame for the video and store it as its thumbnail. Returns whether one was stored."""
    return asyncio.run(_generate(UUID(video_id), seconds))
