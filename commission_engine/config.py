"""
Application configuration using Pydantic Settings.
All environment variables are loaded from .env file.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./commissions.db",
        description="Database connection string (async driver)"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert standard postgres URL to asyncpg format."""
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+asyncpg://", 1)
        elif v.startswith("postgresql://") and "+asyncpg" not in v:
            v = v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    # Commission engine
    recompute_debounce_seconds: float = Field(
        default=0.7,
        ge=0,
        description="Delay before a commission amount edit triggers a recompute"
    )
    default_agent_rate: Decimal = Field(
        default=Decimal("4.0"),
        ge=0,
        description="Rate given to every tier of a newly attached record"
    )
    default_developers_rate: Decimal = Field(
        default=Decimal("5.0"),
        gt=0,
        description="Developer's rate given to every tier of a newly attached record"
    )
    default_ewt_rate: Literal["5", "10"] = Field(
        default="5",
        description="Withholding tax rate (percent) for new records"
    )
    vat_deduction_mode: Literal["stale", "gross_up"] = Field(
        default="stale",
        description=(
            "'stale' keeps previous tier values when 'vat deduction' is selected; "
            "'gross_up' applies the amount / 1.12 formula"
        )
    )

    # Application
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    is_production: bool = Field(
        default=False,
        description="Production mode flag"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
