"""Pydantic schemas for Video."""
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl


class VideoBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=255)
    tags: str | None = None


class ExternalVideoCreate(VideoBase):
    url: HttpUrl
    position: int = Field(0, ge=0)


class VideoUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    category: str | None = Field(None, max_length=255)
    tags: str | None = None
    external_url: str | None = None
    file_path: str | None = None
    thumbnail_path: str | None = None


class ReorderItem(BaseModel):
    id: UUID
    order_index: int = Field(..., ge=0)


class VideoResponse(VideoBase):
    id: UUID
    source_type: Literal["upload", "external"]
    external_url: str | None = None
    file_path: str | None = None
    thumbnail_path: str | None = None
    public_url: str | None = None
    thumbnail_url: str | None = None
    is_public: bool = True
    is_featured: bool = False
    order_index: int = 0
    view_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class VideoPage(BaseModel):
    items: list[VideoResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    categories: list[str] = []
