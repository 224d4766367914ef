"""Pydantic schemas for thumbnail capture."""
from pydantic import BaseModel, Field

from studio.core.config import settings


class ThumbnailCaptureRequest(BaseModel):
    second: float = Field(settings.THUMBNAIL_DEFAULT_SECOND, ge=0)


class ThumbnailResponse(BaseModel):
    thumbnail_path: str | None = None
    thumbnail_url: str | None = None
    width: int | None = None
    height: int | None = None
    captured_at: float | None = None  # seconds into the video
