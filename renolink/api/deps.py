import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from renolink.common.enums import UserRole
from renolink.common.exceptions import (
    ContractorNotVerifiedError,
    NotFoundError,
    PermissionDeniedError,
)
from renolink.common.events import discard_pending, publish_pending
from renolink.common.security import decode_token
from renolink.config import settings
from renolink.db.models.user import User
from renolink.db.session import async_session_factory


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


async def get_db(
    sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncGenerator[AsyncSession, None]:
    async with sessions() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_pending(session)
            raise
        # Only committed changes are announced
        await publish_pending(session)


async def user_from_token(token: str, db: AsyncSession) -> User | None:
    try:
        payload = decode_token(token)
    except ValueError:
        return None
    if payload.get("type") != "access":
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        return None
    result = await db.execute(select(User).where(User.id == uid, User.is_deleted.is_(False)))
    return result.scalar_one_or_none()


async def get_current_user(
    authorization: str = Header(..., description="Bearer <token>"),
    db: AsyncSession = Depends(get_db),
) -> User:
    if not authorization.startswith("Bearer "):
        raise PermissionDeniedError("Invalid authorization header format")

    token = authorization[len("Bearer "):]
    try:
        payload = decode_token(token)
    except ValueError:
        raise PermissionDeniedError("Invalid or expired token")

    if payload.get("type") != "access":
        raise PermissionDeniedError("Invalid token type")
    if not payload.get("sub"):
        raise PermissionDeniedError("Invalid token payload")

    user = await user_from_token(token, db)
    if not user:
        raise NotFoundError("User")
    if not user.is_active:
        raise PermissionDeniedError("User account is inactive")

    return user


def require_role(*roles: UserRole):
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in [r.value for r in roles]:
            raise PermissionDeniedError(
                f"This action requires one of the following roles: {', '.join(r.value for r in roles)}"
            )
        return current_user

    return role_checker


async def require_verified_contractor(
    current_user: User = Depends(require_role(UserRole.CONTRACTOR)),
) -> User:
    if not current_user.is_verified:
        raise ContractorNotVerifiedError()
    return current_user


async def get_page_user(request: Request, db: AsyncSession = Depends(get_db)) -> User | None:
    """Session user for HTML page routes, read from the auth cookie. ``None`` when signed out."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    user = await user_from_token(token, db)
    if user is None or not user.is_active:
        return None
    return user
