"""Authentication routes: signup, login, logout, me and password reset."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.config import get_settings
from estateguard.app.errors import store_http_error
from estateguard.domain.models import User
from estateguard.domain.schemas import (
    PasswordResetConfirm,
    PasswordResetRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from estateguard.infra.database import get_db
from estateguard.services.auth_service import (
    InvalidResetTokenError,
    create_access_token,
    create_password_reset_token,
    create_user,
    decode_token,
    get_user_by_email,
    reset_password,
    verify_password,
)
from estateguard.services.email_service import send_password_reset
from estateguard.services.store_errors import StoreWriteError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def get_current_user_dep(
    request: Request, db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency: extract current user from Bearer token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    token = auth_header.removeprefix("Bearer ")
    payload = decode_token(token)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    result = await db.execute(select(User).where(User.id == payload["sub"]))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


@router.post("/signup", response_model=TokenResponse)
async def signup(data: UserCreate, db: AsyncSession = Depends(get_db)):
    existing = await get_user_by_email(db, data.email)
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    try:
        user = await create_user(db, data.email, data.password, data.name)
    except StoreWriteError as exc:
        raise store_http_error(exc)
    token = create_access_token(user.id)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await get_user_by_email(db, data.email)
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    token = create_access_token(user.id)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout(user: User = Depends(get_current_user_dep)):
    # Tokens are stateless; the client discards its copy
    logger.info("User %s logged out", user.id)
    return {"ok": True}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user_dep)):
    return UserResponse.model_validate(user)


@router.post("/password-reset/request")
async def request_password_reset(
    data: PasswordResetRequest, db: AsyncSession = Depends(get_db)
):
    """Always answers the same way so the endpoint cannot be used to discover accounts."""
    user = await get_user_by_email(db, data.email)
    if user and user.is_active:
        raw = await create_password_reset_token(db, user)
        await send_password_reset(
            user.email,
            user.name,
            raw,
            get_settings().password_reset_expiration_minutes,
        )
    return {"ok": True, "message": "If that account exists, a reset link is on its way."}


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    data: PasswordResetConfirm, db: AsyncSession = Depends(get_db)
):
    try:
        await reset_password(db, data.token, data.new_password)
    except InvalidResetTokenError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"ok": True}
