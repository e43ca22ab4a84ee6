"""
Configuration management with Pydantic settings.
Values come from MIGRATE_* environment variables or a local .env file.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")
ENCRYPTED_SSL_MODES = ("require", "verify-ca", "verify-full")


class Settings(BaseSettings):
    """Migration settings with validation and type safety."""

    model_config = SettingsConfigDict(
        env_prefix="MIGRATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Source Configuration
    sqlite_path: Path = Field(
        default=Path("./prisma/dev.db"),
        description="Path to the SQLite database file to copy from"
    )
    source_table: str = Field(default="Post", description="Table copied by the migration")

    # Destination Configuration
    ssl_mode: str = Field(default="require", description="TLS mode used when the URL asks for less")
    connect_timeout: float = Field(default=30.0, gt=0, le=600)

    # Logging Configuration
    log_level: str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    debug_mode: bool = Field(default=False)
    log_file: Optional[Path] = Field(default=None)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lower-case level names from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("ssl_mode")
    @classmethod
    def validate_ssl_mode(cls, v: str) -> str:
        """Only encrypted libpq sslmode names are accepted."""
        mode = v.strip().lower()
        if mode not in ENCRYPTED_SSL_MODES:
            raise ValueError(f"ssl_mode must be one of: {', '.join(ENCRYPTED_SSL_MODES)}")
        return mode


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings


def get_sqlite_path() -> Path:
    """Get the SQLite source database path."""
    return settings.sqlite_path
