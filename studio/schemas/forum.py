"""Pydantic schemas for forum threads and replies."""
from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field

# What the rich-text editor submits when nothing was typed
EMPTY_EDITOR_VALUES = {"", "<p></p>"}


def _require_content(value: str) -> str:
    if value.strip() in EMPTY_EDITOR_VALUES:
        raise ValueError("Content must not be empty")
    return value


def _require_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title must not be empty")
    return value


EditorContent = Annotated[str, AfterValidator(_require_content)]
Title = Annotated[str, Field(min_length=1, max_length=255), AfterValidator(_require_title)]


class ThreadCreate(BaseModel):
    title: Title
    content: EditorContent
    category: str = Field("General", max_length=50)
    link_url: str | None = None


class ThreadUpdate(BaseModel):
    title: Title | None = None
    content: EditorContent | None = None
    category: str | None = Field(None, max_length=50)
    link_url: str | None = None


class PostCreate(BaseModel):
    content: EditorContent


class ThreadResponse(BaseModel):
    id: UUID
    user_id: UUID | None = None
    title: str
    content: str
    category: str
    link_url: str | None = None
    author_name: str | None = None
    author_avatar: str | None = None
    view_count: int = 0
    reply_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class PostResponse(BaseModel):
    id: UUID
    thread_id: UUID
    user_id: UUID | None = None
    content: str
    author_name: str | None = None
    author_avatar: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
