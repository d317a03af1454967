from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from channel_landing.api import deps
from channel_landing.models.user import User
from channel_landing.schemas.user import RoleUpdate, User as UserSchema
from channel_landing.services.user_service import user_service

router = APIRouter()


@router.get("", response_model=List[UserSchema])
async def read_users(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    List active accounts.
    """
    return await user_service.list_active(db)


@router.post("/{user_id}/role", response_model=UserSchema)
async def update_user_role(
    *,
    db: AsyncSession = Depends(deps.get_db),
    user_id: int,
    role_in: RoleUpdate,
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """
    Change an account's role (admin / employee).
    """
    return await user_service.update_role(db, user_id, role_in.role)
