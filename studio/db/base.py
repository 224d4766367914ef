"""SQLAlchemy declarative base and model imports for Alembic."""
from studio.db.session import Base  # noqa: F401
from studio.models.user import User  # noqa: F401
from studio.models.video import Video  # noqa: F401
from studio.models.forum import ForumThread, ForumPost  # noqa: F401
from studio.models.site_setting import SiteSetting  # noqa: F401

__all__ = ["Base", "User", "Video", "ForumThread", "ForumPost", "SiteSetting"]
