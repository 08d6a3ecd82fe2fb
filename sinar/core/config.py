"""
Application configuration
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "SINAR Document Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    BASE_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api/v1"

    # Database
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "sinar"
    DATABASE_URL: Optional[str] = None  # full URL, takes precedence over DB_*
    AUTO_CREATE_TABLES: bool = True

    # JWT
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # MinIO
    MINIO_ENDPOINT: str = "localhost"
    MINIO_PORT: int = 9000
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_USE_SSL: bool = False
    MINIO_BUCKET_DOCUMENT: str = "document"
    MINIO_BUCKET_REPORT: str = "report"

    # Redis (token blacklist, rate limiting); in-process store when empty
    REDIS_URL: Optional[str] = None

    # Rate limiting: 100 requests / 15 minutes / IP
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Upload limits (bytes)
    MAX_DOCUMENT_SIZE: int = 10 * 1024 * 1024
    MAX_VIDEO_SIZE: int = 500 * 1024 * 1024
    MAX_AUDIO_SIZE: int = 30 * 1024 * 1024
    MAX_LOGO_SIZE: int = 2 * 1024 * 1024
    MAX_REPORT_FILES: int = 10

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Bootstrap admin account, created at startup when both are set
    ADMIN_USERNAME: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Effective async database URL"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USERNAME}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def API_BASE_URL(self) -> str:
        """Public URL prefix used in download/preview links"""
        return f"{self.BASE_URL.rstrip('/')}{self.API_PREFIX}"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
