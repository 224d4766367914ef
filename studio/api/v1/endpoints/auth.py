"""Auth endpoints: signup, login, refresh, profile."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studio.api.deps import get_current_user, get_db
from studio.core.security import decode_token
from studio.models.user import User
from studio.schemas.user import LoginRequest, Token, TokenRefresh, UserCreate, UserResponse, UserUpdate
from studio.services.auth_service import (
    authenticate_user,
    create_tokens_for_user,
    create_user,
    get_user_by_email,
    get_user_by_id,
    user_to_response,
)
from studio.services.settings_service import get_access_mode, signup_enabled


def _log(msg: str, *args):
    print(f"[Auth] {msg}", *args)


router = APIRouter(prefix="/auth", tags=["auth"])


def _token_for(user: User) -> Token:
    access_token, refresh_token = create_tokens_for_user(user)
    return Token(access_token=access_token, refresh_token=refresh_token, user=user_to_response(user))


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    if not signup_enabled(await get_access_mode(db)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Signup disabled")
    if await get_user_by_email(db, data.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = await create_user(db, data)
    _log("Signup:", user.id, user.email)
    return user_to_response(user)


@router.post("/login", response_model=Token)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate_user(db, data.email, data.password)
    if not user:
        _log("Login failed:", data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if user.is_blocked:
        _log("Login refused (blocked):", user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Blocked by administrator")
    return _token_for(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: TokenRefresh,
    db: AsyncSession = Depends(get_db),
):
    payload = decode_token(body.refresh_token, expected_type="refresh")
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    user = await get_user_by_id(db, UUID(payload["sub"]))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if user.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Blocked by administrator")
    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)
    await db.flush()
    await db.refresh(current_user)
    return user_to_response(current_user)
