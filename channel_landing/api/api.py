from fastapi import APIRouter

from channel_landing.api.endpoints import auth, channels, pixel_settings, users

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])  # /register, /login, /logout, /user
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(pixel_settings.router, prefix="/pixel-settings", tags=["pixel_settings"])
api_router.include_router(channels.router, prefix="/channels", tags=["channels"])
