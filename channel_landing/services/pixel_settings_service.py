import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from channel_landing.models.pixel_settings import PixelSettings

logger = logging.getLogger(__name__)


class PixelSettingsService:
    async def get(self, db: AsyncSession, user_id: int) -> Optional[PixelSettings]:
        result = await db.execute(select(PixelSettings).filter(PixelSettings.user_id == user_id))
        return result.scalars().first()

    async def upsert(self, db: AsyncSession, user_id: int, pixel_id: str, access_token: str) -> PixelSettings:
        """Update the user's settings if they exist, otherwise create them."""
        settings = await self.get(db, user_id)
        if settings:
            settings.pixel_id = pixel_id
            settings.access_token = access_token
            logger.info(f"Updated pixel settings for user {user_id}")
        else:
            settings = PixelSettings(user_id=user_id, pixel_id=pixel_id, access_token=access_token)
            db.add(settings)
            logger.info(f"Created pixel settings for user {user_id}")
        await db.commit()
        await db.refresh(settings)
        return settings


pixel_settings_service = PixelSettingsService()
