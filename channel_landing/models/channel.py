import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from channel_landing.core.database import Base


class ChannelStatus(str, enum.Enum):
    """Lifecycle of a channel row. Deleted rows are kept but never served."""
    ACTIVE = "active"
    DELETED = "deleted"


class Channel(Base):
    __tablename__ = "channels"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    subscribers = Column(Integer, nullable=False, default=0)
    logo = Column(String, nullable=False)
    invite_link = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # optional per-channel Pixel credentials, override the owner's defaults
    custom_pixel_id = Column(String, nullable=True)
    custom_access_token = Column(String, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(ChannelStatus, name="channel_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ChannelStatus.ACTIVE,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User")

    @property
    def is_deleted(self) -> bool:
        return self.status == ChannelStatus.DELETED

    def has_custom_pixel(self) -> bool:
        return bool(self.custom_pixel_id and self.custom_access_token)
