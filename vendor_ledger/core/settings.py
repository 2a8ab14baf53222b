"""Application settings and environment loading utilities."""
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_FILE)

PRICE_POLICIES = ("latest_ingested", "latest_effective")


class Settings(BaseSettings):
    """Central application configuration."""

    app_name: str = "Vendor Ledger API"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    database_url: str = Field(
        default="sqlite:///./data/dev.db",
        description="SQLAlchemy database URL",
        alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    activity_webhook_url: str | None = Field(default=None, alias="ACTIVITY_WEBHOOK_URL")
    activity_webhook_timeout: float = Field(default=5.0, alias="ACTIVITY_WEBHOOK_TIMEOUT")
    stale_batch_minutes: int = Field(default=30, ge=1, alias="STALE_BATCH_MINUTES")
    price_update_max_attempts: int = Field(default=3, ge=1, alias="PRICE_UPDATE_MAX_ATTEMPTS")
    price_policy: str = Field(
        default="latest_ingested",
        description="Which import wins the catalog's current price",
        alias="PRICE_POLICY",
    )

    class Config:
        env_file = ENV_FILE
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("price_policy")
    @classmethod
    def validate_price_policy(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in PRICE_POLICIES:
            raise ValueError(f"price_policy must be one of {', '.join(PRICE_POLICIES)}")
        return normalized


@lru_cache
def get_settings() -> "Settings":
    """Return cached settings instance."""

    return Settings()
