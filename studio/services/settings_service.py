"""Site-wide settings stored as name/value rows."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio.core.config import settings
from studio.models.site_setting import SiteSetting

ACCESS_MODE = "access_mode"
ACCESS_MODES = ("open", "login", "invite")


async def get_setting(db: AsyncSession, name: str) -> str | None:
    result = await db.execute(select(SiteSetting.setting_value).where(SiteSetting.setting_name == name))
    return result.scalar_one_or_none()


async def set_setting(db: AsyncSession, name: str, value: str | None) -> None:
    row = await db.get(SiteSetting, name)
    if row is None:
        db.add(SiteSetting(setting_name=name, setting_value=value))
    else:
        row.setting_value = value
    await db.flush()


async def get_access_mode(db: AsyncSession) -> str:
    value = await get_setting(db, ACCESS_MODE)
    return value if value in ACCESS_MODES else settings.DEFAULT_ACCESS_MODE


def requires_login(access_mode: str) -> bool:
    """Listings are gated behind a session in login and invite mode."""
    return access_mode in ("login", "invite")


def signup_enabled(access_mode: str) -> bool:
    return access_mode != "invite"
