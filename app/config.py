from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Optional
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./gst.db"

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "GST Compliance Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Collaborator services (invoice, party and business stores)
    INVOICE_SERVICE_URL: str = "http://localhost:3002"
    PARTY_SERVICE_URL: str = "http://localhost:3003"
    BUSINESS_SERVICE_URL: str = "http://localhost:3001"
    SERVICE_HTTP_TIMEOUT: float = 30.0

    # GSP (GST Suvidha Provider)
    GSP_DEFAULT_PROVIDER: str = "cleartax"
    GSP_ENCRYPTION_KEY: Optional[str] = None  # Master secret for credential encryption
    GSP_ENCRYPTION_SALT: str = "salt"  # Fixed salt for key derivation
    GSP_HTTP_TIMEOUT: float = 30.0
    CLEARTAX_API_URL: str = "https://api.cleartax.in/gst/v1"

    # Report cache
    REPORT_CACHE_TTL_SECONDS: int = 3600  # 1 hour freshness window

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
