import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./clicktrail.db"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_HOUR: int = 30

    # Short codes
    SHORT_CODE_LENGTH: int = 8

    # Domain used to build short URLs
    BASE_URL: str = "http://localhost:8000"

    # IP geolocation
    GEO_ENABLED: bool = True
    GEO_API_URL: str = "http://ip-api.com/json/{ip}"
    GEO_TIMEOUT: float = 2.0
    GEO_CACHE_SIZE: int = 10000

    # Visitor sessions. When disabled every tracked click gets a fresh
    # session id, so unique clicks always equal total clicks.
    VISITOR_COOKIE_ENABLED: bool = False
    VISITOR_COOKIE_NAME: str = "ct_session"
    VISITOR_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 365

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()

# Setup logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
