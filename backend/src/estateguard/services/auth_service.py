"""Authentication service: password hashing, JWT tokens and password resets."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estateguard.app.config import get_settings
from estateguard.domain.models import PasswordResetToken, User
from estateguard.services.settings_service import get_or_create_config
from estateguard.services.store_errors import commit_or_raise

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class InvalidResetTokenError(Exception):
    """Reset token is unknown, used or expired."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode()).hexdigest()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, email: str, password: str, name: str) -> User:
    user = User(
        email=email.strip().lower(),
        password_hash=hash_password(password),
        name=name,
    )
    db.add(user)
    await commit_or_raise(db, "create user")

    # Every account starts with default agency settings and pipeline stages
    await get_or_create_config(db, user.id)
    await db.refresh(user)
    return user


async def create_password_reset_token(db: AsyncSession, user: User) -> str:
    """Store a hashed single-use token and return the raw value for the email."""
    raw = secrets.token_urlsafe(32)
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=_hash_reset_token(raw),
            expires_at=datetime.now(timezone.utc).replace(tzinfo=None)
            + timedelta(minutes=settings.password_reset_expiration_minutes),
        )
    )
    await commit_or_raise(db, "create password reset token")
    return raw


async def reset_password(db: AsyncSession, raw_token: str, new_password: str) -> User:
    result = await db.execute(
        select(PasswordResetToken).where(
            PasswordResetToken.token_hash == _hash_reset_token(raw_token)
        )
    )
    token = result.scalar_one_or_none()
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    if token is None or token.used_at is not None or token.expires_at < now:
        raise InvalidResetTokenError("Reset link is invalid or has expired")

    user = await db.get(User, token.user_id)
    if user is None or not user.is_active:
        raise InvalidResetTokenError("Reset link is invalid or has expired")

    user.password_hash = hash_password(new_password)
    token.used_at = now
    await commit_or_raise(db, "reset password")
    return user
