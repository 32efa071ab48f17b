"""Pydantic settings for the AFx simulator service."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings loaded from AFX_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AFX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    state_file: Optional[Path] = Field(
        default=Path(".afx_state.json"),
        description="JSON snapshot of {config, orders, pool}; empty disables persistence",
    )

    # Reporting
    page_size: int = Field(default=20, ge=1, le=500, description="Rows per page of daily details")

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = Field(default="INFO")

    @field_validator("state_file", mode="before")
    @classmethod
    def parse_state_file(cls, v):
        """Treat an empty string as 'no persistence'."""
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v

    @field_validator("log_level")
    @classmethod
    def valid_log_level(cls, v):
        vv = str(v).upper().strip()
        if vv not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return vv


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
