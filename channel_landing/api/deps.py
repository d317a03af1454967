from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from channel_landing.core.config import settings
from channel_landing.core.database import get_db
from channel_landing.core.errors import Forbidden, Unauthenticated
from channel_landing.models.user import User
from channel_landing.services.channel_cache import ChannelCache
from channel_landing.services.conversion_service import ConversionService
from channel_landing.services.session_service import session_service


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    user = await session_service.get_user(db, get_session_token(request))
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_optional_current_user),
) -> User:
    if user is None:
        raise Unauthenticated()
    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    if not current_user.is_admin:
        raise Forbidden("Admin role required")
    return current_user


def get_channel_cache(request: Request) -> ChannelCache:
    return request.app.state.channel_cache


def get_conversion_service(request: Request) -> ConversionService:
    return request.app.state.conversion_service
