import logging
import uuid
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from channel_landing.core.errors import NotFound
from channel_landing.models.channel import Channel, ChannelStatus
from channel_landing.schemas.channel import ChannelCreate, ChannelUpdate
from channel_landing.services.upload_service import LogoStorage, logo_storage

logger = logging.getLogger(__name__)


def active_channels():
    """Base query for channels that may be served. Every read starts here."""
    return select(Channel).filter(Channel.status == ChannelStatus.ACTIVE)


class ChannelService:
    def __init__(self, storage: LogoStorage = logo_storage):
        self.storage = storage

    async def create(
        self,
        db: AsyncSession,
        data: ChannelCreate,
        user_id: int,
        logo: UploadFile,
    ) -> Channel:
        logo_url = await self.storage.save(logo)
        channel = Channel(
            uuid=str(uuid.uuid4()),
            name=data.name,
            subscribers=data.subscribers,
            invite_link=data.invite_link,
            description=data.description,
            custom_pixel_id=data.custom_pixel_id,
            custom_access_token=data.custom_access_token,
            logo=logo_url,
            user_id=user_id,
            status=ChannelStatus.ACTIVE,
        )
        db.add(channel)
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            await self.storage.delete(logo_url)
            raise
        await db.refresh(channel)
        logger.info(f"Channel created: id={channel.id} uuid={channel.uuid} user={user_id}")
        return channel

    async def list_for_user(self, db: AsyncSession, user_id: int) -> List[Channel]:
        result = await db.execute(
            active_channels()
            .filter(Channel.user_id == user_id)
            .order_by(Channel.created_at.desc(), Channel.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_uuid(self, db: AsyncSession, channel_uuid: str) -> Optional[Channel]:
        result = await db.execute(active_channels().filter(Channel.uuid == channel_uuid))
        return result.scalars().first()

    async def get_owned(self, db: AsyncSession, channel_id: int, user_id: int) -> Channel:
        result = await db.execute(
            active_channels().filter(Channel.id == channel_id, Channel.user_id == user_id)
        )
        channel = result.scalars().first()
        if not channel:
            raise NotFound("Channel not found")
        return channel

    async def update(
        self,
        db: AsyncSession,
        channel_id: int,
        user_id: int,
        data: ChannelUpdate,
        logo: Optional[UploadFile] = None,
    ) -> Channel:
        """Merge the fields that were sent, optionally replacing the logo."""
        channel = await self.get_owned(db, channel_id, user_id)

        update_data = data.model_dump(exclude_unset=True)
        # name and invite link are required columns
        for field in ("name", "invite_link", "subscribers"):
            if field in update_data and update_data[field] is None:
                del update_data[field]
        for field, value in update_data.items():
            setattr(channel, field, value)

        old_logo = new_logo = None
        if logo is not None:
            old_logo = channel.logo
            new_logo = await self.storage.save(logo)
            channel.logo = new_logo

        try:
            await db.commit()
        except Exception:
            await db.rollback()
            if new_logo:
                await self.storage.delete(new_logo)
            raise
        await db.refresh(channel)

        if old_logo:
            await self.storage.delete(old_logo)

        logger.info(f"Channel updated: id={channel.id} fields={sorted(update_data)}{' +logo' if logo else ''}")
        return channel

    async def soft_delete(self, db: AsyncSession, channel_id: int, user_id: int) -> Channel:
        """
        Mark the channel deleted. The row is kept; once the status is committed
        the logo file is removed best-effort and a failure there is only logged.
        """
        channel = await self.get_owned(db, channel_id, user_id)

        channel.status = ChannelStatus.DELETED
        await db.commit()
        await db.refresh(channel)

        await self.storage.delete(channel.logo)
        logger.info(f"Channel soft-deleted: id={channel.id} uuid={channel.uuid}")
        return channel


channel_service = ChannelService()
