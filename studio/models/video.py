"""Video model: uploaded files and linked external sources."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from studio.db.session import Base


class Video(Base):
    __tablename__ = "videos"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)  # rich text HTML
    category = Column(String(255), nullable=True)  # comma-separated
    tags = Column(Text, nullable=True)
    source_type = Column(String(20), nullable=False, default="upload")  # upload | external
    external_url = Column(Text, nullable=True)
    file_path = Column(Text, nullable=True)  # path in the videos bucket
    thumbnail_path = Column(Text, nullable=True)  # path in the thumbnails bucket
    is_public = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    order_index = Column(Integer, default=0, nullable=False, index=True)
    view_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
