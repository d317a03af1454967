from typing import Any, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from channel_landing.api import deps
from channel_landing.models.user import User
from channel_landing.schemas.pixel_settings import PixelSettings as PixelSettingsSchema, PixelSettingsIn
from channel_landing.services.pixel_settings_service import pixel_settings_service

router = APIRouter()


@router.get("", response_model=Optional[PixelSettingsSchema])
async def read_pixel_settings(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Default Pixel credentials of the caller, null when not set yet.
    """
    return await pixel_settings_service.get(db, current_user.id)


@router.post("", response_model=PixelSettingsSchema)
async def save_pixel_settings(
    *,
    db: AsyncSession = Depends(deps.get_db),
    settings_in: PixelSettingsIn,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Create or update the caller's default Pixel credentials.
    """
    return await pixel_settings_service.upsert(
        db, current_user.id, settings_in.pixel_id, settings_in.access_token
    )
