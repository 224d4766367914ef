from studio.models.user import User
from studio.models.video import Video
from studio.models.forum import ForumThread, ForumPost
from studio.models.site_setting import SiteSetting

__all__ = ["User", "Video", "ForumThread", "ForumPost", "SiteSetting"]
