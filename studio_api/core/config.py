# studio_api/core/config.py

import logging
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    """Application settings"""
    # Base App Config
    APP_NAME: str = "Studio API"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Direct Database Connection (for SQLAlchemy)
    DATABASE_URL: str

    # Mux (video processing provider)
    MUX_TOKEN_ID: str
    MUX_TOKEN_SECRET: str
    MUX_WEBHOOK_SECRET: str
    MUX_API_BASE_URL: str = "https://api.mux.com"
    MUX_IMAGE_BASE_URL: str = "https://image.mux.com"
    MUX_WEBHOOK_TOLERANCE_SECONDS: int = 300
    MUX_UPLOAD_CORS_ORIGIN: str = "*"
    SUBTITLE_LANGUAGE_CODE: str = "en"
    SUBTITLE_LANGUAGE_NAME: str = "English"

    # Cloudflare R2 (for thumbnails and previews)
    R2_ENDPOINT_URL: str
    R2_ACCESS_KEY_ID: str
    R2_SECRET_ACCESS_KEY: str
    R2_BUCKET_NAME: str
    R2_PUBLIC_URL: str

    # Outbound HTTP calls (Mux API, fetching generated images)
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Hosts a generated thumbnail may be fetched from (https only). Empty disables generation.
    THUMBNAIL_GENERATION_HOSTS: list[str] = []

    # Presigned PUT URLs for custom thumbnails
    THUMBNAIL_UPLOAD_URL_EXPIRATION_SECONDS: int = 3600

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8'
    )

@lru_cache()
def get_settings():
    return Settings()

settings = get_settings()
