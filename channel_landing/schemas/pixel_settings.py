from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, validator


class PixelSettingsIn(BaseModel):
    pixel_id: str = Field(alias="pixelId")
    access_token: str = Field(alias="accessToken")

    class Config:
        populate_by_name = True

    @validator('pixel_id', 'access_token')
    def not_blank(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v


class PixelSettings(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    pixel_id: str = Field(alias="pixelId")
    access_token: str = Field(alias="accessToken")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True
