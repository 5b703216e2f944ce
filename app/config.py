from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./reward_settings.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes
    AUTO_CREATE_TABLES: bool = True  # Run create_all on startup

    # Shopify session tokens (App Bridge id_token)
    SHOPIFY_API_KEY: str = ""  # Expected "aud" claim
    SHOPIFY_API_SECRET: str = ""  # HMAC key the tokens are signed with
    SESSION_TOKEN_ALGORITHM: str = "HS256"
    SESSION_TOKEN_LEEWAY_SECONDS: int = 10  # Clock skew allowed on exp/nbf
    PAGE_SESSION_EXPIRE_MINUTES: int = 60  # Lifetime of the settings page form session

    # App Settings
    APP_NAME: str = "Reward Settings"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Reject unknown reward types and non-numeric values instead of storing them
    STRICT_REWARD_VALIDATION: bool = False

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "https://admin.shopify.com",
        "http://localhost:3000",
    ]

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin for origin in self.CORS_ORIGINS if origin]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
