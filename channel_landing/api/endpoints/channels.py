import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from channel_landing.api import deps
from channel_landing.core.errors import NotFound, ValidationFailed
from channel_landing.models.user import User
from channel_landing.schemas.channel import (
    Channel as ChannelSchema,
    ChannelCreate,
    ChannelUpdate,
    PublicChannel,
    TrackResult,
)
from channel_landing.services.channel_cache import ChannelCache
from channel_landing.services.channel_service import channel_service
from channel_landing.services.conversion_service import ConversionService, TrackingContext

logger = logging.getLogger(__name__)

router = APIRouter()

# form field names accepted by PATCH, as sent by the dashboard
UPDATABLE_FIELDS = ("name", "subscribers", "inviteLink", "description", "customPixelId", "customAccessToken")


def _field_errors(e: ValidationError) -> List[Dict[str, str]]:
    return [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in e.errors()
    ]


@router.post("", response_model=ChannelSchema, status_code=status.HTTP_201_CREATED)
async def create_channel(
    *,
    db: AsyncSession = Depends(deps.get_db),
    name: Optional[str] = Form(None),
    subscribers: Optional[str] = Form(None),
    invite_link: Optional[str] = Form(None, alias="inviteLink"),
    description: Optional[str] = Form(None),
    custom_pixel_id: Optional[str] = Form(None, alias="customPixelId"),
    custom_access_token: Optional[str] = Form(None, alias="customAccessToken"),
    logo: Optional[UploadFile] = File(None),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Create a channel from a multipart form. The logo file is required.
    """
    if logo is None or not logo.filename:
        raise ValidationFailed("Logo file is required", details=[{"field": "logo", "message": "required"}])

    try:
        channel_in = ChannelCreate(
            name=name,
            subscribers=subscribers,
            inviteLink=invite_link,
            description=description,
            customPixelId=custom_pixel_id,
            customAccessToken=custom_access_token,
        )
    except ValidationError as e:
        raise ValidationFailed("Invalid channel data", details=_field_errors(e))

    return await channel_service.create(db, channel_in, current_user.id, logo)


@router.get("", response_model=List[ChannelSchema])
async def read_channels(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Channels of the current user, deleted ones excluded
    """
    return await channel_service.list_for_user(db, current_user.id)


@router.get("/{channel_uuid}", response_model=PublicChannel)
async def read_channel(
    channel_uuid: str,
    db: AsyncSession = Depends(deps.get_db),
    cache: ChannelCache = Depends(deps.get_channel_cache),
) -> Any:
    """
    Public landing page data for one channel.
    """
    cached = cache.get(channel_uuid)
    if cached is not None:
        return cached

    channel = await channel_service.get_by_uuid(db, channel_uuid)
    if not channel:
        raise NotFound("Channel not found")

    public = PublicChannel.model_validate(channel)
    cache.set(channel_uuid, public)
    return public


@router.patch("/{channel_id}", response_model=ChannelSchema)
async def update_channel(
    *,
    request: Request,
    channel_id: int,
    db: AsyncSession = Depends(deps.get_db),
    cache: ChannelCache = Depends(deps.get_channel_cache),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Partial update from a multipart form; only the fields present are changed.
    """
    form = await request.form()
    fields = {key: form[key] for key in UPDATABLE_FIELDS if key in form}

    logo = form.get("logo")
    if not isinstance(logo, StarletteUploadFile) or not logo.filename:
        logo = None

    try:
        channel_in = ChannelUpdate(**fields)
    except ValidationError as e:
        raise ValidationFailed("Invalid channel data", details=_field_errors(e))

    channel = await channel_service.update(db, channel_id, current_user.id, channel_in, logo)
    cache.invalidate(channel.uuid)
    return channel


@router.delete("/{channel_id}")
async def delete_channel(
    *,
    channel_id: int,
    db: AsyncSession = Depends(deps.get_db),
    cache: ChannelCache = Depends(deps.get_channel_cache),
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Soft-delete a channel
    """
    channel = await channel_service.soft_delete(db, channel_id, current_user.id)
    cache.invalidate(channel.uuid)
    return {"success": True}


@router.post("/{channel_uuid}/track-subscribe", response_model=TrackResult)
async def track_subscribe(
    channel_uuid: str,
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
    conversions: ConversionService = Depends(deps.get_conversion_service),
) -> Any:
    """
    Report a Contact conversion for a landing page click.

    Public. The landing page redirects to the invite link whatever this returns.
    """
    await conversions.track_subscribe(db, channel_uuid, TrackingContext.from_request(request))
    return TrackResult(success=True)
