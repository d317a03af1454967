from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, validator


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


# Channel Schemas
class ChannelBase(BaseModel):
    name: str
    subscribers: int = Field(ge=0)
    invite_link: str = Field(alias="inviteLink")
    description: Optional[str] = None
    custom_pixel_id: Optional[str] = Field(default=None, alias="customPixelId")
    custom_access_token: Optional[str] = Field(default=None, alias="customAccessToken")

    class Config:
        populate_by_name = True

    @validator('name', 'invite_link')
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @validator('description', 'custom_pixel_id', 'custom_access_token', pre=True)
    def blank_is_absent(cls, v):
        return _blank_to_none(v)


class ChannelCreate(ChannelBase):
    pass


class ChannelUpdate(BaseModel):
    name: Optional[str] = None
    subscribers: Optional[int] = Field(default=None, ge=0)
    invite_link: Optional[str] = Field(default=None, alias="inviteLink")
    description: Optional[str] = None
    custom_pixel_id: Optional[str] = Field(default=None, alias="customPixelId")
    custom_access_token: Optional[str] = Field(default=None, alias="customAccessToken")

    class Config:
        populate_by_name = True

    @validator('name', 'invite_link', pre=True)
    def not_blank(cls, v):
        if v is not None and isinstance(v, str) and not v.strip():
            raise ValueError("must not be empty")
        return v.strip() if isinstance(v, str) else v

    @validator('description', 'custom_pixel_id', 'custom_access_token', pre=True)
    def blank_is_absent(cls, v):
        return _blank_to_none(v)


class PublicChannel(BaseModel):
    """What an unauthenticated visitor of a landing page sees."""
    id: int
    uuid: str
    name: str
    subscribers: int
    logo: str
    invite_link: str = Field(alias="inviteLink")
    description: Optional[str] = None
    custom_pixel_id: Optional[str] = Field(default=None, alias="customPixelId")
    user_id: int = Field(alias="userId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True
        json_encoders = {
            datetime: lambda v: v.replace(tzinfo=timezone.utc).isoformat().replace('+00:00', 'Z')
        }


class Channel(PublicChannel):
    custom_access_token: Optional[str] = Field(default=None, alias="customAccessToken")


class TrackResult(BaseModel):
    success: bool = True
