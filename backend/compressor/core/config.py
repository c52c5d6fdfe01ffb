"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
MinIO credentials have no defaults: the service refuses to start without them.
"""

import logging
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "MinIO Video Compressor"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # MinIO / S3-compatible store
    MINIO_ENDPOINT: str = "localhost"
    MINIO_PORT: int = 9000
    MINIO_USE_SSL: bool = False
    MINIO_REGION: str = "us-east-1"

    # MinIO credentials - REQUIRED
    MINIO_ACCESS: str = Field(min_length=1)
    MINIO_SECRET: str = Field(min_length=1)

    # Compression jobs
    MAX_CONCURRENT_JOBS: int = Field(default=2, ge=0)  # 0 = unlimited
    FFMPEG_PATH: str = "ffmpeg"
    TEMP_DIR: Optional[str] = None  # defaults to the system temp directory

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def minio_endpoint_url(self) -> str:
        """Endpoint URL for the S3 client, e.g. ``http://localhost:9000``."""
        scheme = "https" if self.MINIO_USE_SSL else "http"
        return f"{scheme}://{self.MINIO_ENDPOINT}:{self.MINIO_PORT}"


def load_settings() -> Settings:
    """Load settings or exit when required variables are missing or invalid."""
    try:
        return Settings()
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        logger.critical(
            "Missing or invalid required environment variables: %s",
            ", ".join(fields),
        )
        raise SystemExit(1) from e


settings = load_settings()
