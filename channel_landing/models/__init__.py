from channel_landing.models.user import User
from channel_landing.models.channel import Channel, ChannelStatus
from channel_landing.models.pixel_settings import PixelSettings
from channel_landing.models.session import UserSession
