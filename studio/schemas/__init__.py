from studio.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    Token,
    LoginRequest,
)
from studio.schemas.video import ExternalVideoCreate, VideoUpdate, VideoResponse, VideoPage, ReorderItem
from studio.schemas.thumbnail import ThumbnailCaptureRequest, ThumbnailResponse
from studio.schemas.forum import ThreadCreate, ThreadUpdate, PostCreate, ThreadResponse, PostResponse
from studio.schemas.site_setting import AccessModeResponse, AccessModeUpdate
