"""Site access settings."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_admin, get_db
from studio.models.user import User
from studio.schemas.site_setting import AccessModeResponse, AccessModeUpdate
from studio.services.settings_service import ACCESS_MODE, get_access_mode, set_setting, signup_enabled

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/access-mode", response_model=AccessModeResponse)
async def read_access_mode(db: AsyncSession = Depends(get_db)):
    mode = await get_access_mode(db)
    return AccessModeResponse(access_mode=mode, signup_enabled=signup_enabled(mode))


@router.put("/access-mode", response_model=AccessModeResponse)
async def update_access_mode(
    data: AccessModeUpdate,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await set_setting(db, ACCESS_MODE, data.access_mode)
    return AccessModeResponse(access_mode=data.access_mode, signup_enabled=signup_enabled(data.access_mode))
