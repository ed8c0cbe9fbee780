"""
Configuration settings for the payment bridge
Handles environment variables and application settings
"""
from typing import Optional
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import field_validator

load_dotenv()


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "paybridge"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./paybridge.db"

    # BEpusdt gateway
    BEPUSDT_API_URL: Optional[str] = None
    BEPUSDT_API_TOKEN: Optional[str] = None
    DEFAULT_TRADE_TYPE: str = "usdt.trc20"

    # Public origin of this service, used to build the callback URL.
    # Falls back to the origin of the incoming creation request.
    PUBLIC_BASE_URL: Optional[str] = None

    # Where the payer lands after paying
    REDIRECT_BASE_URL: Optional[str] = None

    # Internal consumer of completed-order events
    MANAGER_NOTIFY_URL: Optional[str] = None

    # Callback path: answer "ok" even when the order row could not be written.
    # Off by default so the gateway retries (updates are idempotent).
    ACK_ON_PERSISTENCE_FAILURE: bool = False

    @field_validator(
        "BEPUSDT_API_URL", "PUBLIC_BASE_URL", "REDIRECT_BASE_URL", "MANAGER_NOTIFY_URL"
    )
    @classmethod
    def strip_trailing_slash(cls, v):
        if isinstance(v, str):
            v = v.strip().rstrip("/")
            return v or None
        return v

    @property
    def gateway_configured(self) -> bool:
        return bool(self.BEPUSDT_API_URL and self.BEPUSDT_API_TOKEN)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env file


# Create settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency; override in tests."""
    return settings
