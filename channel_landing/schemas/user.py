import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, validator

from channel_landing.models.user import ROLES


class UserBase(BaseModel):
    username: str


class UserCreate(UserBase):
    password: str

    @validator('username')
    def validate_username(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError('Username must be at least 3 characters')
        if not re.match(r'^[A-Za-z0-9_.\-]+$', v):
            raise ValueError('Username may only contain letters, digits, "_", "." and "-"')
        return v

    @validator('password')
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters')
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class RoleUpdate(BaseModel):
    role: str

    @validator('role')
    def validate_role(cls, v):
        if v not in ROLES:
            raise ValueError("Invalid role")
        return v


class User(UserBase):
    id: int
    role: str
    is_active: bool = Field(alias="isActive")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True
        json_encoders = {
            datetime: lambda v: v.replace(tzinfo=timezone.utc).isoformat().replace('+00:00', 'Z')
        }
