import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from channel_landing.api import deps
from channel_landing.core.config import settings
from channel_landing.core.errors import Unauthenticated
from channel_landing.models.user import ROLE_EMPLOYEE, User
from channel_landing.schemas.user import LoginRequest, User as UserSchema, UserCreate
from channel_landing.services.session_service import session_service
from channel_landing.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


@router.post("/register", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
async def register(
    *,
    db: AsyncSession = Depends(deps.get_db),
    user_in: UserCreate,
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    Create an employee account. Admin only.
    """
    user = await user_service.create(db, user_in.username, user_in.password, role=ROLE_EMPLOYEE)
    logger.info(f"Admin {current_user.username} registered {user.username}")
    return user


@router.post("/login", response_model=UserSchema)
async def login(
    *,
    db: AsyncSession = Depends(deps.get_db),
    credentials: LoginRequest,
    response: Response,
) -> Any:
    """
    Check username/password and open a server-side session
    """
    user = await user_service.authenticate(db, credentials.username, credentials.password)
    if not user:
        raise Unauthenticated("Invalid credentials")

    session = await session_service.create(db, user.id)
    _set_session_cookie(response, session.id)
    logger.info(f"Login successful, session created for {user.username}")
    return user


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    await session_service.delete(db, deps.get_session_token(request))
    response.delete_cookie(settings.SESSION_COOKIE_NAME, samesite="lax")
    return {"success": True}


@router.get("/user", response_model=UserSchema)
async def read_current_user(
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    return current_user
