"""V1 API router aggregation."""
from fastapi import APIRouter

from studio.api.v1.endpoints import auth, users, videos, thumbnails, forum, site_settings

api_router = APIRouter(prefix="/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(videos.router)
api_router.include_router(thumbnails.router)
api_router.include_router(forum.router)
api_router.include_router(site_settings.router)
