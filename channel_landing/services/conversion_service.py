import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from channel_landing.core.config import settings
from channel_landing.core.errors import ConfigurationError, NotFound, UpstreamError
from channel_landing.models.channel import Channel
from channel_landing.services.channel_service import channel_service
from channel_landing.services.pixel_settings_service import pixel_settings_service

logger = logging.getLogger(__name__)


@dataclass
class PixelCredentials:
    pixel_id: str
    access_token: str
    source: str  # "channel" or "user"


@dataclass
class TrackingContext:
    """Ambient request data that goes into the event's user_data."""
    client_ip: str = ""
    user_agent: str = ""
    referer: str = ""
    fbp: str = ""
    fbc: str = ""

    @classmethod
    def from_request(cls, request: Request) -> "TrackingContext":
        # behind a proxy the first X-Forwarded-For entry is the visitor
        forwarded = request.headers.get("x-forwarded-for", "")
        client_ip = forwarded.split(",")[0].strip() if forwarded else ""
        if not client_ip and request.client:
            client_ip = request.client.host or ""
        return cls(
            client_ip=client_ip,
            user_agent=request.headers.get("user-agent", ""),
            referer=request.headers.get("referer", ""),
            fbp=request.cookies.get("_fbp", ""),
            fbc=request.cookies.get("_fbc", ""),
        )


class ConversionService:
    """
    Reports "visitor clicked the invite link" to the Conversions API.

    One call per click, no retries. Callers treat a failure as non-blocking:
    the landing page redirects whatever happens here.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=100)
        timeout = httpx.Timeout(settings.GRAPH_API_TIMEOUT_SECONDS, connect=10.0)
        self.client = httpx.AsyncClient(
            base_url=settings.GRAPH_API_BASE_URL,
            timeout=timeout,
            limits=limits,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def resolve_credentials(self, db: AsyncSession, channel: Channel) -> PixelCredentials:
        """Channel override if both fields are set, else the owner's defaults."""
        if channel.has_custom_pixel():
            return PixelCredentials(channel.custom_pixel_id, channel.custom_access_token, "channel")

        pixel_settings = await pixel_settings_service.get(db, channel.user_id)
        if not pixel_settings:
            logger.error(f"Pixel settings not found for user {channel.user_id} (channel {channel.uuid})")
            raise ConfigurationError("Pixel settings not configured")
        return PixelCredentials(pixel_settings.pixel_id, pixel_settings.access_token, "user")

    def build_payload(
        self,
        channel: Channel,
        context: TrackingContext,
        event_time: Optional[int] = None,
    ) -> Dict[str, Any]:
        return {
            "data": [{
                "event_name": settings.TRACKING_EVENT_NAME,
                "event_time": event_time if event_time is not None else int(time.time()),
                "action_source": "website",
                "event_source_url": context.referer or "",
                "user_data": {
                    "client_ip_address": context.client_ip or "",
                    "client_user_agent": context.user_agent or "",
                    "fbp": context.fbp or "",
                    "fbc": context.fbc or "",
                },
                "custom_data": {
                    "content_name": channel.name,
                    "content_type": "channel",
                    "content_ids": [channel.uuid],
                },
            }],
        }

    def events_path(self, pixel_id: str) -> str:
        return f"/{settings.GRAPH_API_VERSION}/{pixel_id}/events"

    async def send_event(self, credentials: PixelCredentials, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credentials.access_token}",
        }
        try:
            response = await self.client.post(
                self.events_path(credentials.pixel_id),
                json=payload,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.error(f"Conversions API request failed: {e}")
            raise UpstreamError("Failed to track event", details=str(e))

        if response.status_code >= 400:
            logger.error(f"Conversions API error: status={response.status_code} body={response.text[:500]}")
            raise UpstreamError("Failed to track event", details=response.text)

        try:
            return response.json()
        except ValueError:
            return {}

    async def track_subscribe(self, db: AsyncSession, channel_uuid: str, context: TrackingContext) -> Dict[str, Any]:
        logger.info(f"Tracking contact event for channel {channel_uuid}")

        channel = await channel_service.get_by_uuid(db, channel_uuid)
        if not channel:
            raise NotFound("Channel not found")

        credentials = await self.resolve_credentials(db, channel)
        logger.info(f"Using {credentials.source} pixel settings for channel {channel.uuid}")

        payload = self.build_payload(channel, context)
        upstream = await self.send_event(credentials, payload)
        logger.info(f"Conversions API response: {upstream}")
        return upstream
