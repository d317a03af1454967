from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Channel Landing"
    VERSION: str = "1.0.0"
    API_STR: str = "/api"

    HOST: str = "0.0.0.0"
    PORT: int = 5000

    DATABASE_URL: str = "sqlite+aiosqlite:///./data/channel_landing.db"

    # Session cookie
    SESSION_COOKIE_NAME: str = "sid"
    SESSION_MAX_AGE_SECONDS: int = 24 * 60 * 60
    SESSION_COOKIE_SECURE: bool = False

    # Logo uploads
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_LOGO_BYTES: int = 5 * 1024 * 1024

    # Conversions API
    GRAPH_API_BASE_URL: str = "https://graph.facebook.com"
    GRAPH_API_VERSION: str = "v18.0"
    GRAPH_API_TIMEOUT_SECONDS: float = 30.0
    TRACKING_EVENT_NAME: str = "Contact"

    # 0 disables the public channel cache
    CHANNEL_CACHE_TTL_SECONDS: int = 60

    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    FIRST_ADMIN_USERNAME: Optional[str] = None
    FIRST_ADMIN_PASSWORD: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
