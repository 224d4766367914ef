"""User administration: listing and blocking accounts."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_admin, get_db
from studio.models.user import User
from studio.schemas.user import UserBlockUpdate, UserResponse
from studio.services.auth_service import get_user_by_id, list_users, user_to_response

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_all_users(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    return [user_to_response(u) for u in await list_users(db)]


@router.put("/{user_id}/block", response_model=UserResponse)
async def set_blocked(
    user_id: UUID,
    data: UserBlockUpdate,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if user.id == admin.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot block yourself")
    user.is_blocked = data.is_blocked
    await db.flush()
    return user_to_response(user)
